"""Shell dialect detection for terminal panes.

The wrapper needs to know which shell will read the wrapped line: fish
has no ``$?`` and quotes differently from the POSIX family. Detection is
a cascade of progressively weaker evidence, and only positive answers are
cached so a later command can still find a better one.
"""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath

from termbridge.domain.models import ShellType
from termbridge.host.base import TerminalPane, read_buffer

logger = logging.getLogger(__name__)

RECENT_LINES = 50

# Ordered: the first matching signature wins.
BUFFER_SIGNATURES: list[tuple[ShellType, re.Pattern[str]]] = [
    (ShellType.FISH, re.compile(r"welcome to fish", re.IGNORECASE)),
    (ShellType.FISH, re.compile(r"\bfish, version \d", re.IGNORECASE)),
    (ShellType.ZSH, re.compile(r"\bzsh \d+\.\d+", re.IGNORECASE)),
    (ShellType.ZSH, re.compile(r"oh-my-zsh", re.IGNORECASE)),
    (ShellType.ZSH, re.compile(r"^\s*➜ ", re.MULTILINE)),
    (ShellType.BASH, re.compile(r"GNU bash, version \d")),
    (ShellType.BASH, re.compile(r"^bash-\d+\.\d+[$#]", re.MULTILINE)),
]

_KEYWORDS: list[tuple[str, ShellType]] = [
    ("fish", ShellType.FISH),
    ("zsh", ShellType.ZSH),
    ("bash", ShellType.BASH),
]

_POSIX_NAMES = {"sh", "dash", "ash", "ksh", "mksh", "busybox"}


def _scan_buffer(text: str) -> ShellType | None:
    recent = "\n".join(text.split("\n")[-RECENT_LINES:])
    for shell, pattern in BUFFER_SIGNATURES:
        if pattern.search(recent):
            return shell
    return None


def _match_keywords(text: str | None) -> ShellType | None:
    """Look for a shell name in a free-form string (path, command line, title)."""
    if not text:
        return None
    lowered = text.lower()
    for keyword, shell in _KEYWORDS:
        if re.search(rf"\b{keyword}\b", lowered):
            return shell
    return None


def _match_shell_path(shell: str | None) -> ShellType | None:
    if not shell:
        return None
    found = _match_keywords(shell)
    if found is not None:
        return found
    executable = shell.strip().split()[0] if shell.strip() else ""
    if PurePosixPath(executable).name in _POSIX_NAMES:
        return ShellType.POSIX_SH
    return None


class ShellDetector:
    """Classifies the shell attached to a session.

    Cascade:
        1. cached result for the session
        2. recent buffer text (banners, version strings, prompt glyphs)
        3. profile metadata (declared shell path or command line)
        4. pane title
        5. posix-sh, not cached
    """

    def __init__(self) -> None:
        self._cache: dict[str, ShellType] = {}

    def cached(self, session_id: str) -> ShellType | None:
        return self._cache.get(session_id)

    def forget(self, session_id: str) -> None:
        self._cache.pop(session_id, None)

    def detect(self, session_id: str, pane: TerminalPane) -> ShellType:
        cached = self._cache.get(session_id)
        if cached is not None:
            return cached

        try:
            found, source = self._detect_uncached(pane)
        except Exception as e:
            logger.warning("Shell detection failed for %s, assuming posix-sh: %s", session_id, e)
            return ShellType.POSIX_SH

        if found is None:
            logger.debug("No shell evidence for %s, assuming posix-sh", session_id)
            return ShellType.POSIX_SH

        self._cache[session_id] = found
        logger.info("Detected %s for session %s (from %s)", found.value, session_id, source)
        return found

    def _detect_uncached(self, pane: TerminalPane) -> tuple[ShellType | None, str]:
        found = _scan_buffer(read_buffer(pane))
        if found is not None:
            return found, "buffer"

        profile = pane.profile
        if profile is not None:
            found = _match_shell_path(profile.shell)
            if found is not None:
                return found, "profile"

        found = _match_keywords(pane.title)
        if found is not None:
            return found, "title"

        return None, ""
