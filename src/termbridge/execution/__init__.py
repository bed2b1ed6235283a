"""Execution controller: structured command execution on terminal panes."""

from termbridge.execution.controller import CommandExecutor, ConfirmHook

__all__ = ["CommandExecutor", "ConfirmHook"]
