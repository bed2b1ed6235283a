"""Stable identities for terminal panes.

Host tab lists are positional and reorder freely, and split tabs hide
several panes behind one tab. The registry gives every pane object a
UUID the first time it is seen and keeps it for the pane's lifetime, so
callers can target the same pane across calls.
"""

from __future__ import annotations

import logging
import uuid
import weakref
from typing import Any, Mapping

from pydantic import ValidationError

from termbridge.domain.models import Session, SessionLocator
from termbridge.host.base import SplitTab, TerminalHost, TerminalPane

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Assigns, enumerates and resolves sessions for a host.

    Both maps hold panes weakly: the forward map is keyed by pane
    identity and the reverse map drops entries when the pane is garbage
    collected, so closed panes simply become unresolvable.
    """

    def __init__(self, host: TerminalHost) -> None:
        self._host = host
        self._pane_to_id: weakref.WeakKeyDictionary[TerminalPane, str] = weakref.WeakKeyDictionary()
        self._id_to_pane: weakref.WeakValueDictionary[str, TerminalPane] = weakref.WeakValueDictionary()

    @property
    def host(self) -> TerminalHost:
        return self._host

    def get_or_create_session_id(self, pane: TerminalPane) -> str:
        """Return the pane's session ID, minting one on first sight."""
        session_id = self._pane_to_id.get(pane)
        if session_id is None:
            session_id = str(uuid.uuid4())
            self._pane_to_id[pane] = session_id
            self._id_to_pane[session_id] = pane
            logger.debug("Assigned session %s to pane %r", session_id, pane.title)
        return session_id

    def lookup_pane(self, session_id: str) -> TerminalPane | None:
        """Reverse lookup. Returns None for IDs whose pane is gone."""
        return self._id_to_pane.get(session_id)

    def enumerate_sessions(self) -> list[Session]:
        """Flatten the host's tab tree into one session per terminal pane."""
        sessions: list[Session] = []
        active = self._host.active_tab
        global_index = 0

        for app_tab_index, tab in enumerate(self._host.tabs):
            if isinstance(tab, TerminalPane):
                sessions.append(
                    Session(
                        session_id=self.get_or_create_session_id(tab),
                        tab_index=global_index,
                        pane=tab,
                        tab=tab,
                        is_split=False,
                        is_active=tab is active,
                    )
                )
                global_index += 1
            elif isinstance(tab, SplitTab):
                panes = tab.get_all_panes()
                focused = tab.focused_pane
                for pane_index, pane in enumerate(panes):
                    sessions.append(
                        Session(
                            session_id=self.get_or_create_session_id(pane),
                            tab_index=global_index,
                            pane=pane,
                            tab=tab,
                            is_split=True,
                            split_group_id=app_tab_index,
                            pane_index=pane_index,
                            total_panes=len(panes),
                            is_focused=pane is focused,
                            is_active=tab is active,
                        )
                    )
                    global_index += 1

        return sessions

    def resolve(self, locator: SessionLocator | None = None) -> Session | None:
        """Find a session by locator.

        Priority: session_id > tab_index > title > profile_name. A
        session_id that matches nothing returns None rather than falling
        through, so a command can never land on a different pane than
        the caller named. An empty locator picks the focused split pane,
        else the first session.
        """
        sessions = self.enumerate_sessions()
        if locator is None or locator.is_empty:
            focused = next((s for s in sessions if s.is_focused), None)
            if focused is not None:
                return focused
            return sessions[0] if sessions else None

        if locator.session_id is not None:
            found = next((s for s in sessions if s.session_id == locator.session_id), None)
            if found is None:
                logger.warning("Session %s not found", locator.session_id)
            return found

        if locator.tab_index is not None:
            found = next((s for s in sessions if s.tab_index == locator.tab_index), None)
            if found is not None:
                return found

        if locator.title:
            needle = locator.title.lower()
            found = next(
                (s for s in sessions if needle in (s.pane.title or "").lower()), None
            )
            if found is not None:
                return found

        if locator.profile_name:
            needle = locator.profile_name.lower()
            for s in sessions:
                profile = s.pane.profile
                if profile is not None and needle in profile.name.lower():
                    return s

        return None


def coerce_locator(value: SessionLocator | Mapping[str, Any] | None) -> SessionLocator:
    """Validate a caller-supplied locator.

    Raises:
        InvalidLocatorError: If the locator has unknown keys or bad types.
    """
    if isinstance(value, SessionLocator):
        return value
    if value is None:
        return SessionLocator()
    if not isinstance(value, Mapping):
        raise InvalidLocatorError(f"Locator must be a mapping, got {type(value).__name__}")
    try:
        return SessionLocator.model_validate(dict(value))
    except ValidationError as e:
        raise InvalidLocatorError(f"Malformed session locator: {e}") from e


class InvalidLocatorError(ValueError):
    """Raised when a locator object is malformed (caller error)."""
