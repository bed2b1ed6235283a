"""Shared test fixtures for the termbridge test suite.

Provides in-memory panes and hosts that stand in for a terminal
application, including a scripted "shell" that answers wrapped commands
with the same marker lines a real shell would print.
"""

from __future__ import annotations

import asyncio
import re
from typing import Callable

import pytest

from termbridge.capture.poller import BufferPoller
from termbridge.domain.models import PaneProfile
from termbridge.execution.controller import CommandExecutor
from termbridge.host.base import OutputCallback, PaneError, SplitTab, TerminalHost, TerminalPane, Unsubscribe
from termbridge.sessions.registry import SessionRegistry
from termbridge.shell.detector import ShellDetector

# Reply for a command: (output, exit status). None means "never finishes".
Responder = Callable[[str], "tuple[str, int] | None"]

_POSIX_WRAPPED = re.compile(r"""^echo "(?P<start>[^"]+)"; command eval '(?P<cmd>.*)'; echo "(?P<end>\S+) \$\?"$""", re.DOTALL)
_FISH_WRAPPED = re.compile(r"""^echo "(?P<start>[^"]+)"; eval "(?P<cmd>.*)"; echo "(?P<end>\S+) \$status"$""", re.DOTALL)


def unwrap(line: str) -> tuple[str, str, str] | None:
    """Recover (command, start marker, end marker) from a wrapped line."""
    match = _POSIX_WRAPPED.match(line)
    if match:
        return match["cmd"].replace("'\\''", "'"), match["start"], match["end"]
    match = _FISH_WRAPPED.match(line)
    if match:
        cmd = re.sub(r"\\(.)", r"\1", match["cmd"])
        return cmd, match["start"], match["end"]
    return None


class FakePane(TerminalPane):
    """A pane whose buffer and output stream are driven by the test."""

    def __init__(
        self,
        title: str = "Terminal",
        profile: PaneProfile | None = None,
        responder: Responder | None = None,
        stream: bool = True,
        reply_delay: float = 0.02,
    ) -> None:
        self._title = title
        self._profile = profile
        self.responder = responder
        self.stream = stream
        self.reply_delay = reply_delay
        self.connected = True
        self.buffer = ""
        self.writes: list[str] = []
        self.subscribers: list[OutputCallback] = []
        self.unsubscribe_calls = 0
        self.fail_serialize = False

    @property
    def title(self) -> str:
        return self._title

    @property
    def profile(self) -> PaneProfile | None:
        return self._profile

    @property
    def is_connected(self) -> bool:
        return self.connected

    @property
    def supports_output_stream(self) -> bool:
        return self.stream

    def write_input(self, text: str) -> None:
        if not self.connected:
            raise PaneError("pane is closed")
        self.writes.append(text)
        if self.responder is not None and text.endswith("\n"):
            line = text[:-1]
            asyncio.get_running_loop().call_later(self.reply_delay, self._reply, line)

    def serialize_buffer(self) -> str:
        if self.fail_serialize:
            raise RuntimeError("serializer crashed")
        return self.buffer

    def subscribe_output(self, callback: OutputCallback) -> Unsubscribe:
        if not self.stream:
            raise PaneError("no stream")
        self.subscribers.append(callback)

        def unsubscribe() -> None:
            self.unsubscribe_calls += 1
            self.subscribers.remove(callback)

        return unsubscribe

    def emit(self, text: str) -> None:
        self.buffer += text
        for callback in list(self.subscribers):
            callback(text)

    def _reply(self, line: str) -> None:
        # Terminal echo of the typed line comes first
        self.emit(line + "\r\n")
        parsed = unwrap(line)
        if parsed is None:
            return
        command, start, end = parsed
        self.emit(start + "\r\n")
        answer = self.responder(command) if self.responder else None
        if answer is None:
            return
        output, status = answer
        if output:
            self.emit(output.replace("\n", "\r\n") + "\r\n")
        self.emit(f"{end} {status}\r\n$ ")


class FakeHost(TerminalHost):
    def __init__(self, tabs: list[object] | None = None) -> None:
        self._tabs = list(tabs or [])
        self._active = self._tabs[0] if self._tabs else None

    @property
    def tabs(self) -> list[object]:
        return list(self._tabs)

    @property
    def active_tab(self) -> object | None:
        return self._active

    def select_tab(self, tab: object) -> None:
        self._active = tab

    def add_tab(self, tab: object) -> None:
        self._tabs.append(tab)

    def close_tab(self, tab: object) -> None:
        self._tabs.remove(tab)
        if self._active is tab:
            self._active = self._tabs[0] if self._tabs else None


def echo_responder(command: str) -> tuple[str, int] | None:
    """Understands a handful of commands well enough for the tests."""
    if command.startswith("echo "):
        text = command[5:]
        if len(text) >= 2 and text[0] == text[-1] and text[0] in "'\"":
            text = text[1:-1]
        return text, 0
    if command.startswith("exit "):
        return "", int(command.split()[1])
    if command.startswith("sleep"):
        return None
    if command == "false":
        return "", 1
    return f"sh: {command.split()[0]}: not found", 127


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_pane() -> Callable[..., FakePane]:
    """Factory for FakePane instances."""
    return FakePane


@pytest.fixture
def make_host() -> Callable[..., FakeHost]:
    """Factory for FakeHost instances."""
    return FakeHost


@pytest.fixture
def responder() -> Responder:
    return echo_responder


@pytest.fixture
def shell_pane() -> FakePane:
    """A streaming pane answering through ``echo_responder``."""
    return FakePane(title="bash", responder=echo_responder)


@pytest.fixture
def host(shell_pane: FakePane) -> FakeHost:
    return FakeHost([shell_pane])


@pytest.fixture
def split_host() -> FakeHost:
    """One plain tab followed by a three-pane split whose middle pane is focused."""
    plain = FakePane(title="plain", responder=echo_responder)
    panes = [FakePane(title=f"pane {i}", responder=echo_responder) for i in range(3)]
    split = SplitTab(panes, title="split", focused=panes[1])
    return FakeHost([plain, split])


@pytest.fixture
def registry(host: FakeHost) -> SessionRegistry:
    return SessionRegistry(host)


@pytest.fixture
def poller() -> BufferPoller:
    return BufferPoller(poll_interval=0.01)


@pytest.fixture
def executor(registry: SessionRegistry, poller: BufferPoller) -> CommandExecutor:
    return CommandExecutor(registry=registry, capture=poller, detector=ShellDetector())
