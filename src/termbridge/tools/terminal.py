"""Terminal tools exposed to remote callers.

Each tool takes a JSON-style parameter object (camelCase keys) and
returns a JSON-serializable dict. Parameters are validated before any
pane is touched; runtime failures come back as ``success: false``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from termbridge.domain.models import FailureReason, Session, SessionLocator
from termbridge.execution.controller import DEFAULT_TIMEOUT_MS, CommandExecutor
from termbridge.host.base import PaneError, SplitTab, read_buffer

logger = logging.getLogger(__name__)

SESSION_HINT = "Use get_session_list to see available sessions with their sessionIds"

_ESCAPE_RE = re.compile(r"\\(n|r|t|x[0-9a-fA-F]{2})")
_SIMPLE_ESCAPES = {"n": "\n", "r": "\r", "t": "\t"}


def decode_escapes(text: str) -> str:
    r"""Turn literal ``\n``, ``\r``, ``\t`` and ``\xHH`` into the real characters."""

    def replace(match: re.Match[str]) -> str:
        token = match.group(1)
        if token in _SIMPLE_ESCAPES:
            return _SIMPLE_ESCAPES[token]
        return chr(int(token[1:], 16))

    return _ESCAPE_RE.sub(replace, text)


# ---------------------------------------------------------------------------
# Parameter models
# ---------------------------------------------------------------------------


class _Params(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class LocatorParams(_Params):
    session_id: str | None = Field(default=None, description="Stable session ID (recommended)")
    tab_index: int | None = Field(default=None, ge=0, description="Tab index (legacy, may change)")
    title: str | None = Field(default=None, description="Match by title (partial, case-insensitive)")
    profile_name: str | None = Field(
        default=None, description="Match by profile name (partial, case-insensitive)"
    )

    def locator(self) -> SessionLocator:
        return SessionLocator(
            session_id=self.session_id,
            tab_index=self.tab_index,
            title=self.title,
            profile_name=self.profile_name,
        )


class NoParams(_Params):
    pass


class ExecCommandParams(LocatorParams):
    command: str = Field(description="Command to execute")
    wait_for_output: bool = Field(
        default=True, description="Wait for completion. Set false for interactive commands."
    )
    timeout: int = Field(default=DEFAULT_TIMEOUT_MS, gt=0, description="Timeout in ms (max 300000)")


class SendInputParams(LocatorParams):
    input: str = Field(description=r"Input to send; \n, \r, \t and \xHH are decoded")


class GetBufferParams(LocatorParams):
    last_n_lines: int | None = Field(default=None, ge=0, description="Only the last N lines")
    start_line: int | None = Field(default=None, ge=0, description="Start line (0-indexed)")
    end_line: int | None = Field(default=None, ge=0, description="End line (exclusive)")


class FocusPaneParams(_Params):
    session_id: str = Field(description="Session ID of the pane to focus")


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    params: type[_Params]
    handler: Callable[[Any], Awaitable[Any]]


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------


class TerminalTools:
    """The terminal tool category.

    Example usage::

        tools = TerminalTools(executor)
        result = await tools.call("exec_command", {"command": "ls", "sessionId": sid})
    """

    def __init__(self, executor: CommandExecutor) -> None:
        self._executor = executor
        self._registry = executor.registry
        self._tools: dict[str, ToolSpec] = {}
        self._register(
            "get_session_list",
            "List terminal sessions with stable IDs and split pane metadata.",
            NoParams,
            self.get_session_list,
        )
        self._register(
            "exec_command",
            "Execute a command and return its output and exit code.",
            ExecCommandParams,
            self.exec_command,
        )
        self._register(
            "send_input",
            "Send raw input (keystrokes, control characters) to a terminal.",
            SendInputParams,
            self.send_input,
        )
        self._register(
            "get_terminal_buffer",
            "Read the text content of a terminal buffer.",
            GetBufferParams,
            self.get_terminal_buffer,
        )
        self._register(
            "abort_command",
            "Abort the running command by sending Ctrl+C.",
            LocatorParams,
            self.abort_command,
        )
        self._register(
            "get_command_status",
            "List commands currently tracked across all terminals.",
            NoParams,
            self.get_command_status,
        )
        self._register(
            "focus_pane",
            "Focus a pane inside a split tab, or select its tab.",
            FocusPaneParams,
            self.focus_pane,
        )
        logger.info("Terminal tools initialized")

    def _register(
        self,
        name: str,
        description: str,
        params: type[_Params],
        handler: Callable[[Any], Awaitable[Any]],
    ) -> None:
        self._tools[name] = ToolSpec(name, description, params, handler)

    @property
    def tools(self) -> list[ToolSpec]:
        return list(self._tools.values())

    async def call(self, name: str, params: Mapping[str, Any] | None = None) -> Any:
        """Validate ``params`` for tool ``name`` and run it.

        Raises:
            UnknownToolError: If no tool has that name.
            ToolParamsError: If the parameters do not validate.
        """
        spec = self._tools.get(name)
        if spec is None:
            raise UnknownToolError(f"Unknown tool: {name}")
        try:
            parsed = spec.params.model_validate(dict(params or {}))
        except ValidationError as e:
            raise ToolParamsError(f"Invalid parameters for {name}: {e}") from e
        logger.debug("Calling tool %s", name)
        return await spec.handler(parsed)

    # -- individual tools ---------------------------------------------------

    async def get_session_list(self, params: NoParams | None = None) -> list[dict[str, Any]]:
        sessions = self._registry.enumerate_sessions()
        result = [self._describe(s) for s in sessions]
        logger.info("Found %d terminal sessions", len(result))
        return result

    async def exec_command(self, params: ExecCommandParams) -> dict[str, Any]:
        result = await self._executor.exec_command(
            params.locator(),
            params.command,
            wait_for_output=params.wait_for_output,
            timeout_ms=params.timeout,
        )
        payload = result.to_payload()
        if result.error == FailureReason.NO_SESSION.value:
            payload["hint"] = SESSION_HINT
        elif result.success and not params.wait_for_output:
            payload["message"] = "Command sent (not waiting for output)"
            payload["hint"] = "Use get_terminal_buffer with the same sessionId to check output"
        return payload

    async def send_input(self, params: SendInputParams) -> dict[str, Any]:
        session = self._registry.resolve(params.locator())
        if session is None:
            return _no_session()
        try:
            session.pane.write_input(decode_escapes(params.input))
        except PaneError as e:
            logger.error("Failed to send input to session %s: %s", session.session_id, e)
            return {"success": False, "sessionId": session.session_id, "error": str(e)}
        preview = params.input[:50] + ("..." if len(params.input) > 50 else "")
        logger.info("Sent input to session %s: %s", session.session_id, preview)
        return {"success": True, "sessionId": session.session_id, "message": "Input sent"}

    async def get_terminal_buffer(self, params: GetBufferParams) -> dict[str, Any]:
        session = self._registry.resolve(params.locator())
        if session is None:
            return _no_session()

        lines = read_buffer(session.pane).split("\n")
        if params.last_n_lines is not None:
            selected = lines[-params.last_n_lines:] if params.last_n_lines else []
        else:
            start = params.start_line or 0
            end = params.end_line if params.end_line is not None else len(lines)
            selected = lines[start:end]

        return {
            "success": True,
            "sessionId": session.session_id,
            "tabIndex": session.tab_index,
            "totalLines": len(lines),
            "returnedLines": len(selected),
            "content": "\n".join(selected),
        }

    async def abort_command(self, params: LocatorParams) -> dict[str, Any]:
        result = await self._executor.abort(params.locator())
        if result.error == FailureReason.NO_SESSION.value:
            return _no_session()
        payload: dict[str, Any] = {"success": result.success, "sessionId": result.session_id}
        if result.success:
            payload["message"] = "Ctrl+C sent"
        else:
            payload["error"] = result.error
        return payload

    async def get_command_status(self, params: NoParams | None = None) -> dict[str, Any]:
        active = [
            {
                "sessionId": cmd.session_id,
                "command": cmd.command,
                "startedAt": cmd.issued_at.isoformat(),
                "runningFor": f"{round(cmd.running_for)}s",
            }
            for cmd in self._executor.active_commands()
        ]
        return {"success": True, "activeCommands": active, "count": len(active)}

    async def focus_pane(self, params: FocusPaneParams) -> dict[str, Any]:
        session = self._registry.resolve(SessionLocator(session_id=params.session_id))
        if session is None:
            return _no_session()

        host = self._registry.host
        if session.is_split and isinstance(session.tab, SplitTab):
            session.tab.focus(session.pane)
            host.select_tab(session.tab)
            logger.info("Focused pane %s of split tab %s", session.pane_index, session.split_group_id)
            return {
                "success": True,
                "message": f"Focused pane {session.pane_index} of {session.total_panes}",
                "sessionId": session.session_id,
                "paneIndex": session.pane_index,
                "title": session.pane.title,
            }

        host.select_tab(session.tab)
        return {
            "success": True,
            "message": "Selected tab (not a split pane)",
            "sessionId": session.session_id,
        }

    def _describe(self, session: Session) -> dict[str, Any]:
        pane = session.pane
        profile = pane.profile
        return {
            "sessionId": session.session_id,
            "tabIndex": session.tab_index,
            "title": pane.title or f"Terminal {session.tab_index}",
            "type": type(pane).__name__,
            "isActive": session.is_active,
            "hasActiveCommand": self._executor.has_active_command(session.session_id),
            "isSplit": session.is_split,
            "splitGroupId": session.split_group_id,
            "paneIndex": session.pane_index,
            "totalPanes": session.total_panes,
            "isFocusedPane": session.is_focused,
            "profile": (
                {"id": profile.id, "name": profile.name, "type": profile.type}
                if profile is not None
                else None
            ),
            "pid": pane.pid,
            "cwd": pane.cwd,
        }


def _no_session() -> dict[str, Any]:
    return {"success": False, "error": FailureReason.NO_SESSION.value, "hint": SESSION_HINT}


class UnknownToolError(LookupError):
    """Raised when a tool name is not registered."""


class ToolParamsError(ValueError):
    """Raised when tool parameters fail validation."""
