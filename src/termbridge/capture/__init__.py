"""Output Capture module for termbridge.

Watches a pane's output for the sentinel markers of a wrapped command.
Two interchangeable strategies implement the same interface.

Public API:
    OutputCapture -- Abstract strategy
    BufferPoller -- Periodic full-buffer snapshots
    StreamCapture -- Incremental raw-output accumulation
    create_capture -- Build the configured strategy
"""

from __future__ import annotations

from termbridge.capture.base import (
    CaptureError,
    CaptureWatch,
    OutputCapture,
    StreamError,
    extract_output,
)
from termbridge.capture.poller import BufferPoller
from termbridge.capture.stream import StreamCapture
from termbridge.config.settings import ExecutionConfig

__all__ = [
    "BufferPoller",
    "CaptureError",
    "CaptureWatch",
    "OutputCapture",
    "StreamCapture",
    "StreamError",
    "create_capture",
    "extract_output",
]


def create_capture(config: ExecutionConfig | None = None) -> OutputCapture:
    """Build the capture strategy selected by ``config.capture_strategy``."""
    if config is None:
        config = ExecutionConfig()
    poller = BufferPoller(
        poll_interval=config.poll_interval,
        initial_delay=config.initial_delay,
        stable_checks=config.stable_checks,
    )
    if config.capture_strategy == "stream":
        return StreamCapture(
            health_check_interval=config.health_check_interval,
            fallback=poller,
        )
    return poller
