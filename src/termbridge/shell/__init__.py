"""Shell dialect detection and sentinel-marker command wrapping."""

from termbridge.shell.detector import ShellDetector
from termbridge.shell.wrapper import end_marker_pattern, make_markers, wrap_command

__all__ = ["ShellDetector", "end_marker_pattern", "make_markers", "wrap_command"]
