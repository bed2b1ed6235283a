"""Abstract interface for sentinel-marker output capture.

A capture strategy watches one pane's output until the end marker of a
wrapped command shows up, then cuts the text between the start and end
markers. Strategies differ only in where the text comes from (periodic
buffer snapshots or an accumulated raw output stream); the exit policy
for abort, disconnect and timeout is shared and lives here.
"""

from __future__ import annotations

import asyncio
import logging
import re
from abc import ABC, abstractmethod
from typing import Callable

from termbridge.domain.models import CommandResult, FailureReason
from termbridge.host.base import TerminalPane
from termbridge.shell.wrapper import end_marker_pattern

logger = logging.getLogger(__name__)

TRUNCATION_WARNING = "[output truncated: start marker scrolled out of the buffer]"

AbortCheck = Callable[[], bool]


def _drop_command_echo(text: str, end_marker: str) -> str:
    """Remove a leading line that is the shell's echo of the wrapped command."""
    lines = text.split("\n")
    if lines and end_marker in lines[0]:
        lines.pop(0)
        return "\n".join(lines).strip()
    return text


def extract_output(
    text: str,
    start_marker: str,
    end_marker: str,
    end_pattern: re.Pattern[str] | None = None,
) -> CommandResult | None:
    """Cut the command output out of ``text`` once the end marker is present.

    Returns None while the end marker (with its numeric status) has not
    been printed yet.
    """
    pattern = end_pattern or end_marker_pattern(end_marker)
    match = pattern.search(text)
    if match is None:
        return None

    end_index = match.start()
    exit_code = int(match.group(1))
    start_index = text.rfind(start_marker, 0, end_index)

    if start_index == -1:
        leading = text[:end_index].strip()
        output = f"{TRUNCATION_WARNING}\n{leading}" if leading else TRUNCATION_WARNING
    else:
        output = text[start_index + len(start_marker):end_index].strip()
        output = _drop_command_echo(output, end_marker)

    return CommandResult(success=exit_code == 0, output=output, exit_code=exit_code)


def timeout_result(text: str, start_marker: str, end_marker: str) -> CommandResult:
    """Result for a command whose end marker never arrived."""
    start_index = text.rfind(start_marker)
    if start_index == -1:
        return CommandResult.failure(FailureReason.TIMEOUT)

    partial = text[start_index + len(start_marker):].strip()
    partial = _drop_command_echo(partial, end_marker)
    return CommandResult.failure(FailureReason.TIMEOUT_PARTIAL, output=partial, exit_code=-1)


class CaptureWatch(ABC):
    """One in-flight watch over a pane for a single marker pair.

    Subclasses supply the text to scan and the way to idle between
    checks; ``wait()`` runs the shared loop. Each tick checks, in order:
    abort flag, end marker, pane connection, deadline.
    """

    def __init__(self, pane: TerminalPane, start_marker: str, end_marker: str) -> None:
        self._pane = pane
        self._start_marker = start_marker
        self._end_marker = end_marker
        self._end_pattern = end_marker_pattern(end_marker)
        self._closed = False

    @property
    @abstractmethod
    def tick_interval(self) -> float:
        """Longest pause between two checks, in seconds."""
        ...

    @abstractmethod
    def snapshot(self) -> str:
        """Current text to scan for markers."""
        ...

    @abstractmethod
    async def _idle(self, seconds: float) -> None:
        ...

    async def _prepare(self) -> None:
        """Hook run once before the first check."""

    def _on_tick(self, text: str) -> None:
        """Hook run after every check that found no end marker."""

    def _release(self) -> None:
        """Free strategy resources. Called exactly once by ``close()``."""

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._release()

    async def wait(self, timeout: float, is_aborted: AbortCheck) -> CommandResult:
        """Wait for the end marker, an abort, a disconnect or the deadline.

        Args:
            timeout: Seconds before giving up.
            is_aborted: Polled once per tick; abort is cooperative.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        try:
            await self._prepare()
            while True:
                if is_aborted():
                    logger.info("Capture aborted (%s)", self._end_marker)
                    return CommandResult.failure(FailureReason.ABORTED)

                text = self.snapshot()
                result = extract_output(text, self._start_marker, self._end_marker, self._end_pattern)
                if result is not None:
                    return result
                self._on_tick(text)

                if not self._pane.is_connected:
                    logger.warning("Pane %r disconnected during execution", self._pane.title)
                    return CommandResult.failure(FailureReason.DISCONNECTED, exit_code=-1)

                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                await self._idle(min(self.tick_interval, remaining))

            logger.warning("Command timed out after %.1fs (%s)", timeout, self._end_marker)
            return timeout_result(self.snapshot(), self._start_marker, self._end_marker)
        finally:
            self.close()


class OutputCapture(ABC):
    """A capture strategy.

    ``attach()`` must be called before the wrapped command is written so
    strategies that listen to live output cannot miss the markers.

    Example usage::

        watch = capture.attach(pane, start, end)
        pane.write_input(wrapped + "\\n")
        result = await watch.wait(timeout=30.0, is_aborted=lambda: False)
    """

    name: str = ""

    @abstractmethod
    def attach(self, pane: TerminalPane, start_marker: str, end_marker: str) -> CaptureWatch:
        """Start watching ``pane`` for the given marker pair.

        Raises:
            StreamError: If a live output subscription cannot be made.
        """
        ...

    async def watch(
        self,
        pane: TerminalPane,
        start_marker: str,
        end_marker: str,
        timeout: float,
        is_aborted: AbortCheck,
    ) -> CommandResult:
        """Attach and wait in one call, for output already being produced."""
        watch = self.attach(pane, start_marker, end_marker)
        return await watch.wait(timeout, is_aborted)


class CaptureError(Exception):
    """Raised when output capture cannot be set up."""


class StreamError(CaptureError):
    """Raised when subscribing to a pane's output stream fails."""
