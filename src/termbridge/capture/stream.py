"""Stream capture: accumulate a pane's raw output events.

Unlike buffer snapshots, the accumulator cannot lose the start marker to
scrollback trimming, which matters for commands with long output.
"""

from __future__ import annotations

import asyncio
import logging

from termbridge.capture.base import CaptureWatch, OutputCapture, StreamError
from termbridge.host.base import TerminalPane, Unsubscribe
from termbridge.utils.ansi import normalize_newlines, strip_ansi

logger = logging.getLogger(__name__)


class StreamWatch(CaptureWatch):
    """Subscribes on construction and unsubscribes exactly once on close.

    Every chunk wakes the wait loop; without output the loop still wakes
    every ``health_check_interval`` to notice aborts and disconnects.
    """

    def __init__(
        self,
        pane: TerminalPane,
        start_marker: str,
        end_marker: str,
        health_check_interval: float = 0.5,
    ) -> None:
        super().__init__(pane, start_marker, end_marker)
        self._health_check_interval = health_check_interval
        self._chunks: list[str] = []
        self._wake = asyncio.Event()
        try:
            self._unsubscribe: Unsubscribe | None = pane.subscribe_output(self._on_chunk)
        except Exception as e:
            self._closed = True
            raise StreamError(f"Cannot subscribe to output of {pane.title!r}: {e}") from e
        logger.debug("Subscribed to output of %r", pane.title)

    @property
    def tick_interval(self) -> float:
        return self._health_check_interval

    @property
    def received(self) -> int:
        """Number of characters accumulated so far."""
        return sum(len(c) for c in self._chunks)

    def _on_chunk(self, chunk: str) -> None:
        if self._closed:
            return
        self._chunks.append(chunk)
        self._wake.set()

    def snapshot(self) -> str:
        return normalize_newlines(strip_ansi("".join(self._chunks)))

    async def _idle(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        self._wake.clear()

    def _release(self) -> None:
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        try:
            unsubscribe()
        except Exception as e:
            logger.warning("Failed to unsubscribe from %r: %s", self._pane.title, e)
        else:
            logger.debug("Unsubscribed from output of %r", self._pane.title)


class StreamCapture(OutputCapture):
    """Capture strategy built on the pane's raw output event stream.

    Panes without an output stream are handed to ``fallback``.
    """

    name = "stream"

    def __init__(
        self,
        health_check_interval: float = 0.5,
        fallback: OutputCapture | None = None,
    ) -> None:
        self._health_check_interval = health_check_interval
        self._fallback = fallback

    def attach(self, pane: TerminalPane, start_marker: str, end_marker: str) -> CaptureWatch:
        if not pane.supports_output_stream and self._fallback is not None:
            logger.info(
                "Pane %r has no output stream, falling back to %s capture",
                pane.title, self._fallback.name,
            )
            return self._fallback.attach(pane, start_marker, end_marker)
        return StreamWatch(
            pane,
            start_marker,
            end_marker,
            health_check_interval=self._health_check_interval,
        )
