"""Local terminal pane backed by a shell on a pseudo-terminal.

Runs a long-lived interactive shell under a pty, keeps a bounded
scrollback of its output with escape sequences removed, and forwards each
decoded output chunk to stream subscribers.
"""

from __future__ import annotations

import asyncio
import fcntl
import logging
import os
import pty
import select
import signal
import struct
import termios
from pathlib import Path

from termbridge.domain.models import PaneProfile
from termbridge.host.base import OutputCallback, PaneError, TerminalPane, Unsubscribe
from termbridge.utils.ansi import normalize_newlines, strip_ansi

logger = logging.getLogger(__name__)


class PtyPane(TerminalPane):
    """An interactive shell subprocess attached to a pty.

    Uses a pseudo-terminal so the shell behaves as it would in a real
    terminal window: it prints a prompt, echoes input and handles Ctrl+C.
    """

    def __init__(
        self,
        shell_command: str = "/bin/bash",
        title: str | None = None,
        rows: int = 24,
        cols: int = 120,
        scrollback_lines: int = 5000,
        profile: PaneProfile | None = None,
    ) -> None:
        self._shell_command = shell_command
        self._title = title or Path(shell_command).name
        self._rows = rows
        self._cols = cols
        self._scrollback_lines = scrollback_lines
        self._profile = profile or PaneProfile(
            id=f"local:{shell_command}",
            name=self._title,
            type="local",
            shell=shell_command,
        )
        self._lines: list[str] = []
        self._partial_line = ""
        self._pending_cr = False
        self._subscribers: list[OutputCallback] = []
        self._is_alive = False
        self._read_task: asyncio.Task[None] | None = None
        self._master_fd: int | None = None
        self._pid: int | None = None

    @property
    def title(self) -> str:
        return self._title

    @property
    def profile(self) -> PaneProfile | None:
        return self._profile

    @property
    def is_connected(self) -> bool:
        return self._is_alive

    @property
    def pid(self) -> int | None:
        return self._pid

    @property
    def cwd(self) -> str | None:
        if self._pid is None:
            return None
        try:
            return os.readlink(f"/proc/{self._pid}/cwd")
        except OSError:
            return None

    @property
    def supports_output_stream(self) -> bool:
        return True

    async def start(self) -> None:
        """Start the shell subprocess on a new pty."""
        master_fd, slave_fd = pty.openpty()

        winsize = struct.pack("HHHH", self._rows, self._cols, 0, 0)
        fcntl.ioctl(slave_fd, termios.TIOCSWINSZ, winsize)

        env = os.environ.copy()
        env["TERM"] = "xterm-256color"
        env["COLUMNS"] = str(self._cols)
        env["LINES"] = str(self._rows)

        pid = os.fork()
        if pid == 0:
            # Child process
            os.close(master_fd)
            os.setsid()
            fcntl.ioctl(slave_fd, termios.TIOCSCTTY, 0)
            os.dup2(slave_fd, 0)
            os.dup2(slave_fd, 1)
            os.dup2(slave_fd, 2)
            if slave_fd > 2:
                os.close(slave_fd)
            os.execvpe(self._shell_command, [self._shell_command], env)
        else:
            os.close(slave_fd)
            self._pid = pid
            self._master_fd = master_fd

            flags = fcntl.fcntl(master_fd, fcntl.F_GETFL)
            fcntl.fcntl(master_fd, fcntl.F_SETFL, flags | os.O_NONBLOCK)

            self._is_alive = True
            self._read_task = asyncio.create_task(self._read_output_loop())
            logger.info(
                "Started shell %s (pid=%d, %dx%d)",
                self._shell_command, pid, self._cols, self._rows,
            )

    async def stop(self) -> None:
        """Stop the shell subprocess and mark the pane disconnected."""
        self._is_alive = False
        if self._read_task is not None:
            self._read_task.cancel()
            try:
                await self._read_task
            except asyncio.CancelledError:
                pass
            self._read_task = None

        if self._pid is not None:
            await self._terminate(self._pid)
            self._pid = None

        self._close_master()
        logger.info("Shell %s stopped", self._title)

    async def _terminate(self, pid: int, grace: float = 0.2) -> None:
        """SIGTERM the shell, then SIGKILL it if it is still around after ``grace``."""
        for sig in (signal.SIGTERM, signal.SIGKILL):
            try:
                os.kill(pid, sig)
            except ProcessLookupError:
                return
            if sig == signal.SIGTERM:
                await asyncio.sleep(grace)
            if self._reap(pid, block=sig == signal.SIGKILL):
                return

    @staticmethod
    def _reap(pid: int, block: bool) -> bool:
        """True once ``pid`` has exited and been collected."""
        try:
            reaped, _ = os.waitpid(pid, 0 if block else os.WNOHANG)
        except ChildProcessError:
            return True
        return reaped == pid

    def write_input(self, text: str) -> None:
        if not self._is_alive or self._master_fd is None:
            raise PaneError(f"Shell {self._title!r} is not alive")
        try:
            os.write(self._master_fd, text.encode())
        except OSError as e:
            raise PaneError(f"Failed to write to shell: {e}") from e

    def serialize_buffer(self) -> str:
        lines = list(self._lines)
        if self._partial_line:
            lines.append(self._partial_line)
        return "\n".join(lines)

    def subscribe_output(self, callback: OutputCallback) -> Unsubscribe:
        if not self._is_alive:
            raise PaneError(f"Shell {self._title!r} is not alive")
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _feed(self, data: str) -> None:
        """Record a decoded output chunk and forward it to subscribers."""
        for callback in list(self._subscribers):
            try:
                callback(data)
            except Exception as e:
                logger.error("Output subscriber failed on %r: %s", self._title, e)

        text = data
        # A CRLF pair may be split across reads
        if self._pending_cr and not text.startswith("\n"):
            text = "\n" + text
        self._pending_cr = text.endswith("\r")
        if self._pending_cr:
            text = text[:-1]
        text = normalize_newlines(strip_ansi(self._partial_line + text))
        lines = text.split("\n")
        self._partial_line = lines.pop()
        self._lines.extend(lines)
        if len(self._lines) > self._scrollback_lines:
            self._lines = self._lines[-self._scrollback_lines:]

    async def _read_output_loop(self) -> None:
        """Background task that reads shell output until the shell exits."""
        loop = asyncio.get_running_loop()
        while self._is_alive and self._master_fd is not None:
            try:
                data = await loop.run_in_executor(None, self._read_master)
            except asyncio.CancelledError:
                break
            except EOFError:
                logger.info("Shell %s exited", self._title)
                self._is_alive = False
                self._close_master()
                break
            if data:
                self._feed(data)

    def _read_master(self) -> str | None:
        """Read from the master pty fd (blocking call, run in executor).

        Raises:
            EOFError: When the shell side of the pty has closed.
        """
        fd = self._master_fd
        if fd is None:
            raise EOFError
        try:
            r, _, _ = select.select([fd], [], [], 0.1)
            if not r:
                return None
            data = os.read(fd, 4096)
        except BlockingIOError:
            return None
        except (OSError, ValueError) as e:
            raise EOFError from e
        if not data:
            raise EOFError
        return data.decode("utf-8", errors="replace")

    def _close_master(self) -> None:
        if self._master_fd is not None:
            try:
                os.close(self._master_fd)
            except OSError:
                pass
            self._master_fd = None
