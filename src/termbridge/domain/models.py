"""Core domain models for the termbridge system.

These models represent the data flowing through the execution engine:
resolved sessions and the locators used to find them, tracked in-flight
commands, shell dialects, and the structured result of a command.
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ShellType(str, enum.Enum):
    """Interactive shell dialect attached to a pane."""

    POSIX_SH = "posix-sh"
    BASH = "bash"
    ZSH = "zsh"
    FISH = "fish"


class FailureReason(str, enum.Enum):
    """Canonical error messages surfaced in failed results."""

    NO_SESSION = "No matching terminal session found"
    ABORTED = "Command aborted"
    TIMEOUT = "Command timeout"
    TIMEOUT_PARTIAL = "Command timeout (partial output captured)"
    DISCONNECTED = "Session disconnected during execution"
    REJECTED = "Command rejected by user"


# ---------------------------------------------------------------------------
# Session Models
# ---------------------------------------------------------------------------


class PaneProfile(BaseModel):
    """Profile metadata declared for a pane by the host."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default="", description="Host-specific profile identifier")
    name: str = Field(default="", description="Human-readable profile name")
    type: str = Field(default="local", description="Profile kind (local, ssh, serial, ...)")
    shell: str | None = Field(
        default=None, description="Declared shell path or command line, if any"
    )


class SessionLocator(BaseModel):
    """Caller-supplied fields used to resolve a target session.

    Fields are tried in priority order: session_id, tab_index, title,
    profile_name. Unknown keys are rejected so a typo never silently
    resolves to the default session.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        frozen=True,
    )

    session_id: str | None = Field(default=None, description="Stable session ID (recommended)")
    tab_index: int | None = Field(default=None, ge=0, description="Positional index (legacy)")
    title: str | None = Field(default=None, description="Case-insensitive title substring")
    profile_name: str | None = Field(
        default=None, description="Case-insensitive profile name substring"
    )

    @property
    def is_empty(self) -> bool:
        return (
            self.session_id is None
            and self.tab_index is None
            and not self.title
            and not self.profile_name
        )


class Session(BaseModel):
    """A live terminal pane with its stable identity and layout metadata.

    Sessions are rebuilt on every enumeration; only ``session_id`` is
    stable across enumerations.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    session_id: str = Field(description="Stable opaque ID, unique per pane object")
    tab_index: int = Field(ge=0, description="Global index across all panes")
    pane: Any = Field(exclude=True, description="Host terminal pane handle")
    tab: Any = Field(exclude=True, description="Parent host tab (the pane itself or a split tab)")
    is_split: bool = Field(default=False)
    split_group_id: int | None = Field(
        default=None, description="Index of the parent split tab in the host tab list"
    )
    pane_index: int | None = Field(default=None, ge=0)
    total_panes: int | None = Field(default=None, gt=0)
    is_focused: bool | None = Field(default=None)
    is_active: bool = Field(default=False, description="Parent tab is the host's active tab")


# ---------------------------------------------------------------------------
# Execution Models
# ---------------------------------------------------------------------------


class ActiveCommand(BaseModel):
    """A command currently being tracked on a session.

    One slot per session. Aborting only flips the flag; the capture loop
    observes it on its next tick.
    """

    session_id: str
    command: str
    issued_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    start_marker: str
    end_marker: str
    aborted: bool = Field(default=False)

    def abort(self) -> None:
        self.aborted = True

    @property
    def running_for(self) -> float:
        """Seconds since the command was issued."""
        return (datetime.now(timezone.utc) - self.issued_at).total_seconds()


class CommandResult(BaseModel):
    """Structured result of one command execution."""

    success: bool
    output: str = Field(default="")
    exit_code: int | None = Field(
        default=None, description="Present only when an exit status was observed (or -1)"
    )
    error: str | None = Field(default=None)
    session_id: str | None = Field(default=None)

    @classmethod
    def failure(
        cls,
        reason: FailureReason | str,
        output: str = "",
        exit_code: int | None = None,
    ) -> CommandResult:
        message = reason.value if isinstance(reason, FailureReason) else reason
        return cls(success=False, output=output, exit_code=exit_code, error=message)

    def to_payload(self) -> dict[str, Any]:
        """Serialize with camelCase keys, omitting absent optional fields."""
        payload: dict[str, Any] = {"success": self.success, "output": self.output}
        if self.exit_code is not None:
            payload["exitCode"] = self.exit_code
        if self.error is not None:
            payload["error"] = self.error
        if self.session_id is not None:
            payload["sessionId"] = self.session_id
        return payload
