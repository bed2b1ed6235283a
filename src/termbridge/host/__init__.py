"""Host terminal application interfaces for termbridge.

Public API:
    TerminalPane -- Abstract pane (input channel + buffer + output stream)
    SplitTab -- A tab split between several panes
    TerminalHost -- Abstract host holding tabs
    LocalHost -- pty-backed host (imported lazily, POSIX only)
"""

from termbridge.host.base import (
    PaneError,
    SplitTab,
    TerminalHost,
    TerminalPane,
    read_buffer,
)

__all__ = [
    "LocalHost",
    "PaneError",
    "PtyPane",
    "SplitTab",
    "TerminalHost",
    "TerminalPane",
    "read_buffer",
]


def __getattr__(name: str) -> type:
    """Lazy import for the pty-backed implementations."""
    if name == "LocalHost":
        from termbridge.host.local import LocalHost
        return LocalHost
    if name == "PtyPane":
        from termbridge.host.pty_pane import PtyPane
        return PtyPane
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
