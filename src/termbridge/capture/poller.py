"""Buffer-snapshot capture: re-read the whole pane buffer on an interval."""

from __future__ import annotations

import asyncio
import logging

from termbridge.capture.base import CaptureWatch, OutputCapture
from termbridge.host.base import TerminalPane, read_buffer
from termbridge.utils.ansi import normalize_newlines, strip_ansi

logger = logging.getLogger(__name__)


class BufferPollWatch(CaptureWatch):
    """Polls the serialized buffer and tracks how long it stayed unchanged.

    Buffer stability is informational only: a command that prints nothing
    for ``stable_checks`` polls is most likely waiting for input, which is
    logged once so interactive commands are easy to spot.
    """

    def __init__(
        self,
        pane: TerminalPane,
        start_marker: str,
        end_marker: str,
        poll_interval: float,
        initial_delay: float = 0.0,
        stable_checks: int = 5,
    ) -> None:
        super().__init__(pane, start_marker, end_marker)
        self._poll_interval = poll_interval
        self._initial_delay = initial_delay
        self._stable_checks = stable_checks
        self._last_length = -1
        self.stable_count = 0
        self._reported_idle = False

    @property
    def tick_interval(self) -> float:
        return self._poll_interval

    def snapshot(self) -> str:
        return normalize_newlines(strip_ansi(read_buffer(self._pane)))

    async def _prepare(self) -> None:
        if self._initial_delay > 0:
            await asyncio.sleep(self._initial_delay)

    async def _idle(self, seconds: float) -> None:
        await asyncio.sleep(seconds)

    def _on_tick(self, text: str) -> None:
        if len(text) == self._last_length:
            self.stable_count += 1
        else:
            self.stable_count = 0
            self._last_length = len(text)

        if self.stable_count >= self._stable_checks and not self._reported_idle:
            self._reported_idle = True
            logger.info(
                "No output from %r for %d polls; command may be waiting for input",
                self._pane.title, self.stable_count,
            )


class BufferPoller(OutputCapture):
    """Capture strategy that snapshots the full buffer every ``poll_interval``."""

    name = "buffer"

    def __init__(
        self,
        poll_interval: float = 0.1,
        initial_delay: float = 0.0,
        stable_checks: int = 5,
    ) -> None:
        self._poll_interval = poll_interval
        self._initial_delay = initial_delay
        self._stable_checks = stable_checks

    def attach(self, pane: TerminalPane, start_marker: str, end_marker: str) -> BufferPollWatch:
        return BufferPollWatch(
            pane,
            start_marker,
            end_marker,
            poll_interval=self._poll_interval,
            initial_delay=self._initial_delay,
            stable_checks=self._stable_checks,
        )
