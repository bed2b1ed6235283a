"""Helpers for turning raw terminal output into plain text."""

from __future__ import annotations

import re

# CSI sequences (colors, cursor movement, bracketed paste toggles)
_CSI_RE = re.compile(r"\x1b\[[0-9;?]*[ -/]*[@-~]")
# OSC sequences (window title, hyperlinks, shell integration marks)
_OSC_RE = re.compile(r"\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)")
_CHARSET_RE = re.compile(r"\x1b[()][AB012]")
_KEYPAD_RE = re.compile(r"\x1b[>=]")
# Control characters except tab, newline and carriage return
_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def strip_ansi(text: str) -> str:
    """Remove escape sequences and stray control characters."""
    text = _CSI_RE.sub("", text)
    text = _OSC_RE.sub("", text)
    text = _CHARSET_RE.sub("", text)
    text = _KEYPAD_RE.sub("", text)
    return _CONTROL_RE.sub("", text)


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")
