"""Tests for text and logging helpers."""

from __future__ import annotations

import logging

from termbridge.config.settings import LoggingConfig
from termbridge.utils.ansi import normalize_newlines, strip_ansi
from termbridge.utils.logging import RecentLogHandler, get_recent_logs, setup_logging


class TestAnsi:
    def test_strip_colors(self) -> None:
        assert strip_ansi("\x1b[1;31merror\x1b[0m") == "error"

    def test_strip_osc_title_and_hyperlink(self) -> None:
        text = "\x1b]0;user@host\x07\x1b]8;;https://x\x1b\\link\x1b]8;;\x1b\\"
        assert strip_ansi(text) == "link"

    def test_strip_bracketed_paste_and_controls(self) -> None:
        assert strip_ansi("\x1b[?2004h$ \x07ls\x1b[?2004l") == "$ ls"

    def test_keeps_tabs_and_newlines(self) -> None:
        assert strip_ansi("a\tb\r\nc") == "a\tb\r\nc"

    def test_normalize_newlines(self) -> None:
        assert normalize_newlines("a\r\nb\rc\n") == "a\nb\nc\n"


class TestRecentLogHandler:
    def test_ring_buffer(self) -> None:
        handler = RecentLogHandler(capacity=2)
        log = logging.getLogger("termbridge.test.ring")
        log.addHandler(handler)
        log.setLevel(logging.DEBUG)
        try:
            log.info("one")
            log.warning("two %d", 2)
            log.error("three")
        finally:
            log.removeHandler(handler)

        assert [r["message"] for r in handler.records()] == ["two 2", "three"]
        assert [r["message"] for r in handler.records("ERROR")] == ["three"]
        handler.clear()
        assert handler.records() == []


class TestSetupLogging:
    def test_recent_logs_available(self) -> None:
        root = logging.getLogger("termbridge")
        before = list(root.handlers)
        try:
            setup_logging(LoggingConfig(level="DEBUG", buffer_size=10))
            logging.getLogger("termbridge.sessions").info("registry ready")
            messages = [r["message"] for r in get_recent_logs("info")]
            assert "registry ready" in messages
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
            root.setLevel(logging.NOTSET)

    def test_repeated_setup_does_not_stack_handlers(self) -> None:
        root = logging.getLogger("termbridge")
        before = list(root.handlers)
        try:
            setup_logging(LoggingConfig(buffer_size=10))
            setup_logging(LoggingConfig(buffer_size=10))
            added = [h for h in root.handlers if h not in before]
            assert sum(type(h) is logging.StreamHandler for h in added) == 1
            assert sum(isinstance(h, RecentLogHandler) for h in added) == 1
        finally:
            for handler in list(root.handlers):
                if handler not in before:
                    root.removeHandler(handler)
            root.setLevel(logging.NOTSET)
