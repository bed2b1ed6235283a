"""Tool surface consumed by the transport layer."""

from termbridge.tools.terminal import (
    TerminalTools,
    ToolParamsError,
    UnknownToolError,
    decode_escapes,
)

__all__ = ["TerminalTools", "ToolParamsError", "UnknownToolError", "decode_escapes"]
