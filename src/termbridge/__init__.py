"""termbridge -- Structured command execution over interactive terminal panes.

Terminal panes only offer a write-only input channel and a scrollback
buffer. This package rebuilds a "run command, get output and exit code"
contract on top of them by wrapping each command in sentinel markers and
watching the pane's output until the end marker appears.
"""

__version__ = "0.1.0"
