"""Pair-programming confirmation hooks.

A hook is called with the command and target session ID before anything
is written to the pane and returns whether execution may proceed.
"""

from __future__ import annotations

import asyncio
import logging
import sys

from termbridge.config.settings import PairProgrammingConfig
from termbridge.execution.controller import ConfirmHook

logger = logging.getLogger(__name__)


def _ask(command: str, session_id: str) -> bool:
    print(f"\nRemote caller wants to run in session {session_id}:", file=sys.stderr)
    print(f"    {command}", file=sys.stderr)
    try:
        answer = input("Allow? [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


async def console_confirm(command: str, session_id: str) -> bool:
    """Ask on the server's terminal. Declines when stdin is closed."""
    allowed = await asyncio.to_thread(_ask, command, session_id)
    logger.info("Command %s by operator: %s", "approved" if allowed else "rejected", command)
    return allowed


def confirm_hook_from_config(config: PairProgrammingConfig) -> ConfirmHook | None:
    if config.enabled and config.show_confirmation_dialog:
        return console_confirm
    return None
