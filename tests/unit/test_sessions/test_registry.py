"""Tests for the session registry."""

from __future__ import annotations

import gc
import uuid

import pytest

from termbridge.domain.models import PaneProfile, SessionLocator
from termbridge.host.base import SplitTab
from termbridge.sessions.registry import InvalidLocatorError, SessionRegistry, coerce_locator


class TestSessionIds:
    """Test session ID assignment and reverse lookup."""

    def test_id_is_uuid(self, make_pane, make_host) -> None:
        pane = make_pane()
        registry = SessionRegistry(make_host([pane]))
        session_id = registry.get_or_create_session_id(pane)
        assert str(uuid.UUID(session_id)) == session_id

    def test_id_is_stable(self, make_pane, make_host) -> None:
        """The same pane object should always get the same ID."""
        pane = make_pane()
        registry = SessionRegistry(make_host([pane]))
        assert registry.get_or_create_session_id(pane) == registry.get_or_create_session_id(pane)

    def test_distinct_panes_get_distinct_ids(self, make_pane, make_host) -> None:
        a, b = make_pane(title="same"), make_pane(title="same")
        registry = SessionRegistry(make_host([a, b]))
        assert registry.get_or_create_session_id(a) != registry.get_or_create_session_id(b)

    def test_lookup_pane(self, make_pane, make_host) -> None:
        pane = make_pane()
        registry = SessionRegistry(make_host([pane]))
        session_id = registry.get_or_create_session_id(pane)
        assert registry.lookup_pane(session_id) is pane
        assert registry.lookup_pane("missing") is None

    def test_id_survives_reordering(self, make_pane, make_host) -> None:
        a, b = make_pane(title="a"), make_pane(title="b")
        host = make_host([a, b])
        registry = SessionRegistry(host)
        before = {s.pane.title: s.session_id for s in registry.enumerate_sessions()}

        host._tabs.reverse()
        after = registry.enumerate_sessions()

        assert [s.pane.title for s in after] == ["b", "a"]
        assert {s.pane.title: s.session_id for s in after} == before
        assert [s.tab_index for s in after] == [0, 1]

    def test_closed_pane_becomes_unresolvable(self, make_pane, make_host) -> None:
        """Dropping the last reference to a pane should drop its ID."""
        pane = make_pane()
        host = make_host([pane])
        registry = SessionRegistry(host)
        session_id = registry.get_or_create_session_id(pane)

        host.close_tab(pane)
        del pane
        gc.collect()

        assert registry.lookup_pane(session_id) is None
        assert registry.resolve(SessionLocator(session_id=session_id)) is None


class TestEnumerateSessions:
    """Test flattening of plain and split tabs."""

    def test_empty_host(self, make_host) -> None:
        assert SessionRegistry(make_host([])).enumerate_sessions() == []

    def test_split_tab_flattening(self, split_host) -> None:
        sessions = SessionRegistry(split_host).enumerate_sessions()

        assert len(sessions) == 4
        assert [s.tab_index for s in sessions] == [0, 1, 2, 3]

        plain = sessions[0]
        assert plain.is_split is False
        assert plain.split_group_id is None
        assert plain.pane_index is None
        assert plain.is_active is True

        split = sessions[1:]
        assert all(s.is_split for s in split)
        assert {s.split_group_id for s in split} == {1}
        assert [s.pane_index for s in split] == [0, 1, 2]
        assert all(s.total_panes == 3 for s in split)
        assert [s.is_focused for s in split] == [False, True, False]
        assert not any(s.is_active for s in split)

    def test_nested_split_flattened_in_order(self, make_pane, make_host) -> None:
        a, b, c = make_pane(title="a"), make_pane(title="b"), make_pane(title="c")
        tab = SplitTab([a, SplitTab([b, c])])
        sessions = SessionRegistry(make_host([tab])).enumerate_sessions()
        assert [s.pane.title for s in sessions] == ["a", "b", "c"]
        assert sessions[0].is_focused is True

    def test_non_terminal_tabs_skipped(self, make_pane, make_host) -> None:
        pane = make_pane()
        sessions = SessionRegistry(make_host(["settings page", pane])).enumerate_sessions()
        assert len(sessions) == 1
        assert sessions[0].pane is pane
        assert sessions[0].tab_index == 0


class TestResolve:
    """Test locator resolution priority and fallbacks."""

    def test_empty_locator_prefers_focused_split_pane(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        session = registry.resolve(SessionLocator())
        assert session is not None
        assert session.pane.title == "pane 1"

    def test_empty_locator_defaults_to_first(self, make_pane, make_host) -> None:
        a, b = make_pane(title="a"), make_pane(title="b")
        registry = SessionRegistry(make_host([a, b]))
        assert registry.resolve(None).pane is a

    def test_empty_locator_no_sessions(self, make_host) -> None:
        assert SessionRegistry(make_host([])).resolve(SessionLocator()) is None

    def test_session_id_match(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        target = registry.enumerate_sessions()[3]
        found = registry.resolve(SessionLocator(session_id=target.session_id))
        assert found is not None
        assert found.pane is target.pane

    def test_unknown_session_id_does_not_fall_back(self, split_host) -> None:
        """A stale ID must never land on another pane, even with other fields set."""
        registry = SessionRegistry(split_host)
        locator = SessionLocator(session_id="stale", tab_index=0, title="plain")
        assert registry.resolve(locator) is None

    def test_empty_session_id_is_not_a_wildcard(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        assert SessionLocator(session_id="").is_empty is False
        assert registry.resolve(SessionLocator(session_id="")) is None

    def test_tab_index(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        assert registry.resolve(SessionLocator(tab_index=2)).pane.title == "pane 1"

    def test_tab_index_miss_falls_through_to_title(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        assert registry.resolve(SessionLocator(tab_index=99, title="PANE 2")).pane.title == "pane 2"

    def test_title_substring_case_insensitive(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        assert registry.resolve(SessionLocator(title="PLA")).pane.title == "plain"

    def test_profile_name(self, make_pane, make_host) -> None:
        local = make_pane(title="one", profile=PaneProfile(id="l", name="Local bash"))
        remote = make_pane(title="two", profile=PaneProfile(id="r", name="Prod SSH", type="ssh"))
        registry = SessionRegistry(make_host([local, remote]))
        assert registry.resolve(SessionLocator(profile_name="prod")).pane is remote

    def test_nothing_matches(self, split_host) -> None:
        registry = SessionRegistry(split_host)
        assert registry.resolve(SessionLocator(title="nope", profile_name="nope")) is None


class TestCoerceLocator:
    """Test validation of caller-supplied locators."""

    def test_none_is_empty(self) -> None:
        assert coerce_locator(None).is_empty

    def test_camel_case_keys(self) -> None:
        locator = coerce_locator({"sessionId": "abc", "tabIndex": 2})
        assert locator.session_id == "abc"
        assert locator.tab_index == 2

    def test_passthrough(self) -> None:
        locator = SessionLocator(title="x")
        assert coerce_locator(locator) is locator

    def test_unknown_key_rejected(self) -> None:
        with pytest.raises(InvalidLocatorError):
            coerce_locator({"sesionId": "typo"})

    def test_bad_type_rejected(self) -> None:
        with pytest.raises(InvalidLocatorError):
            coerce_locator({"tabIndex": "first"})

    def test_negative_tab_index_rejected(self) -> None:
        with pytest.raises(InvalidLocatorError):
            coerce_locator({"tabIndex": -1})

    def test_non_mapping_rejected(self) -> None:
        with pytest.raises(InvalidLocatorError):
            coerce_locator(["sessionId", "abc"])  # type: ignore[arg-type]
