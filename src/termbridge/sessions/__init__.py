"""Session registry: stable identities for terminal panes."""

from termbridge.sessions.registry import InvalidLocatorError, SessionRegistry, coerce_locator

__all__ = ["InvalidLocatorError", "SessionRegistry", "coerce_locator"]
