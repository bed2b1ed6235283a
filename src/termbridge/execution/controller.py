"""Execution controller: one tracked command per session.

Ties the pieces together for a single ``exec_command`` call: resolve the
session, ask the confirmation hook, wrap the command for the detected
shell, attach the capture strategy, write the line and wait.

Abort is cooperative. It flips the command's flag so the local wait
stops on its next tick, and separately sends Ctrl+C to the pane. Nothing
here can stop work the remote shell is already doing beyond that
interrupt byte.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Mapping, Union

from termbridge.capture.base import OutputCapture, StreamError
from termbridge.domain.models import (
    ActiveCommand,
    CommandResult,
    FailureReason,
    Session,
    SessionLocator,
)
from termbridge.host.base import PaneError, SplitTab
from termbridge.sessions.registry import SessionRegistry, coerce_locator
from termbridge.shell.detector import ShellDetector
from termbridge.shell.wrapper import make_markers, wrap_command

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 30000
MAX_TIMEOUT_MS = 300000
INTERRUPT = "\x03"

ConfirmHook = Callable[[str, str], Union[bool, Awaitable[bool]]]
LocatorLike = Union[SessionLocator, Mapping[str, Any], None]


class CommandExecutor:
    """Runs commands on sessions and tracks them while they are in flight.

    Starting a command on a session that already has one replaces the
    tracking entry without cancelling the earlier wait; the earlier call
    keeps running until its own marker, timeout or disconnect.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        capture: OutputCapture,
        detector: ShellDetector | None = None,
        confirm: ConfirmHook | None = None,
        auto_focus: bool = False,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
        max_timeout_ms: int = MAX_TIMEOUT_MS,
    ) -> None:
        self._registry = registry
        self._capture = capture
        self._detector = detector or ShellDetector()
        self._confirm = confirm
        self._auto_focus = auto_focus
        self._default_timeout_ms = default_timeout_ms
        self._max_timeout_ms = max_timeout_ms
        self._active_commands: dict[str, ActiveCommand] = {}

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    @property
    def capture(self) -> OutputCapture:
        return self._capture

    def has_active_command(self, session_id: str) -> bool:
        return session_id in self._active_commands

    def active_commands(self) -> list[ActiveCommand]:
        return list(self._active_commands.values())

    def clamp_timeout(self, timeout_ms: int | None) -> int:
        if timeout_ms is None:
            timeout_ms = self._default_timeout_ms
        return max(0, min(timeout_ms, self._max_timeout_ms))

    async def exec_command(
        self,
        locator: LocatorLike,
        command: str,
        wait_for_output: bool = True,
        timeout_ms: int | None = None,
    ) -> CommandResult:
        """Run ``command`` on the session named by ``locator``.

        Never raises for runtime failures; they come back as
        ``success=False`` results.

        Raises:
            InvalidLocatorError: If ``locator`` is malformed.
        """
        locator = coerce_locator(locator)
        session = self._registry.resolve(locator)
        if session is None:
            return CommandResult.failure(FailureReason.NO_SESSION)

        if not await self._confirmed(command, session):
            logger.info("Command rejected for session %s: %s", session.session_id, command)
            result = CommandResult.failure(FailureReason.REJECTED)
            result.session_id = session.session_id
            return result

        try:
            self._focus(session)
            if not wait_for_output:
                session.pane.write_input(command + "\n")
                logger.info("Sent command (async): %s in session %s", command, session.session_id)
                return CommandResult(success=True, session_id=session.session_id)
            result = await self._run_tracked(session, command, self.clamp_timeout(timeout_ms))
        except Exception as e:
            logger.exception("Command execution error in session %s", session.session_id)
            result = CommandResult.failure(str(e) or type(e).__name__)

        result.session_id = session.session_id
        return result

    async def _run_tracked(self, session: Session, command: str, timeout_ms: int) -> CommandResult:
        start_marker, end_marker = make_markers()
        active = ActiveCommand(
            session_id=session.session_id,
            command=command,
            start_marker=start_marker,
            end_marker=end_marker,
        )
        previous = self._active_commands.get(session.session_id)
        if previous is not None:
            logger.warning(
                "Session %s already tracks %r; replacing it without cancelling",
                session.session_id, previous.command,
            )
        self._active_commands[session.session_id] = active

        try:
            dialect = self._detector.detect(session.session_id, session.pane)
            wrapped = wrap_command(command, start_marker, end_marker, dialect)

            try:
                watch = self._capture.attach(session.pane, start_marker, end_marker)
            except StreamError as e:
                logger.error("Stream capture failed for session %s: %s", session.session_id, e)
                return CommandResult.failure(f"Stream capture failed: {e}")

            try:
                session.pane.write_input(wrapped + "\n")
            except PaneError:
                watch.close()
                raise

            logger.info(
                "Executing command: %s in session %s (%s, %s capture)",
                command, session.session_id, dialect.value, self._capture.name,
            )
            return await watch.wait(timeout_ms / 1000.0, lambda: active.aborted)
        finally:
            if self._active_commands.get(session.session_id) is active:
                del self._active_commands[session.session_id]

    async def abort(self, locator: LocatorLike) -> CommandResult:
        """Stop waiting for the session's command and send Ctrl+C.

        Succeeds even when no command is tracked; the interrupt is sent
        regardless.

        Raises:
            InvalidLocatorError: If ``locator`` is malformed.
        """
        session = self._registry.resolve(coerce_locator(locator))
        if session is None:
            return CommandResult.failure(FailureReason.NO_SESSION)

        active = self._active_commands.pop(session.session_id, None)
        if active is not None:
            active.abort()
            logger.info("Aborted %r in session %s", active.command, session.session_id)

        try:
            session.pane.write_input(INTERRUPT)
        except PaneError as e:
            logger.error("Failed to send Ctrl+C to session %s: %s", session.session_id, e)
            result = CommandResult.failure(f"Failed to send interrupt: {e}")
        else:
            logger.info("Sent Ctrl+C to session %s", session.session_id)
            result = CommandResult(success=True)
        result.session_id = session.session_id
        return result

    async def _confirmed(self, command: str, session: Session) -> bool:
        if self._confirm is None:
            return True
        try:
            answer = self._confirm(command, session.session_id)
            if inspect.isawaitable(answer):
                answer = await answer
        except Exception as e:
            logger.error("Confirmation hook failed, treating as rejection: %s", e)
            return False
        return bool(answer)

    def _focus(self, session: Session) -> None:
        if not self._auto_focus:
            return
        host = self._registry.host
        if isinstance(session.tab, SplitTab):
            session.tab.focus(session.pane)
        host.select_tab(session.tab)
