"""Domain models for termbridge.

This package contains all core data structures, enumerations, and value
objects used throughout the system. All models use Pydantic v2 for
validation and serialization.
"""

from termbridge.domain.models import (
    ActiveCommand,
    CommandResult,
    FailureReason,
    PaneProfile,
    Session,
    SessionLocator,
    ShellType,
)

__all__ = [
    "ActiveCommand",
    "CommandResult",
    "FailureReason",
    "PaneProfile",
    "Session",
    "SessionLocator",
    "ShellType",
]
