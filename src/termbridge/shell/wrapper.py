"""Sentinel-marker command wrapping.

A wrapped command is one input line that prints a start marker, runs the
user command through ``eval`` and prints an end marker followed by the
exit status. Going through ``eval`` keeps a syntax error inside the user
command from making the shell reject the whole line, which would swallow
the end marker and leave the capture waiting until its timeout.
"""

from __future__ import annotations

import itertools
import re
import time

from termbridge.domain.models import ShellType

MARKER_PREFIX = "__TB"

_sequence = itertools.count()


def make_markers() -> tuple[str, str]:
    """Return a fresh (start, end) marker pair derived from the clock."""
    token = f"{time.time_ns() // 1_000_000}_{next(_sequence)}"
    return f"{MARKER_PREFIX}_START_{token}__", f"{MARKER_PREFIX}_END_{token}__"


def end_marker_pattern(end_marker: str) -> re.Pattern[str]:
    """Regex matching the printed end marker and capturing the exit status."""
    return re.compile(re.escape(end_marker) + r"\s+(\d+)")


def quote_posix(command: str) -> str:
    """Single-quote for sh/bash/zsh: each ' becomes '\\''."""
    return "'" + command.replace("'", "'\\''") + "'"


def quote_fish(command: str) -> str:
    """Double-quote for fish, escaping backslash, quote and dollar."""
    escaped = command.replace("\\", "\\\\").replace('"', '\\"').replace("$", "\\$")
    return f'"{escaped}"'


def wrap_command(command: str, start_marker: str, end_marker: str, dialect: ShellType) -> str:
    """Build the single input line for ``command`` in ``dialect``.

    The returned string carries no trailing newline.
    """
    if dialect is ShellType.FISH:
        return f'echo "{start_marker}"; eval {quote_fish(command)}; echo "{end_marker} $status"'
    # `command` strips eval of special-builtin status: a syntax error in the
    # user command no longer aborts the rest of the line in dash and other
    # POSIX shells.
    return f'echo "{start_marker}"; command eval {quote_posix(command)}; echo "{end_marker} $?"'
