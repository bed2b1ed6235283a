"""Abstract interfaces for the host terminal application.

The execution engine never talks to a concrete terminal directly. It
consumes panes (write input, serialize the buffer, optionally stream raw
output, report whether the connection is open) and a host that lays those
panes out in tabs and split groups. Swapping the local pty host for
another terminal application only requires implementing these classes.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Union

from termbridge.domain.models import PaneProfile

logger = logging.getLogger(__name__)

OutputCallback = Callable[[str], None]
Unsubscribe = Callable[[], None]


class TerminalPane(ABC):
    """A single interactive terminal surface.

    Panes are identified by object identity: the session registry keys
    its weak maps on the pane instance, so implementations must not
    override ``__eq__``/``__hash__``.
    """

    @property
    @abstractmethod
    def title(self) -> str:
        """Display title of the pane."""
        ...

    @property
    def profile(self) -> PaneProfile | None:
        """Profile metadata the pane was opened with, if any."""
        return None

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the underlying session is still open."""
        ...

    @property
    def pid(self) -> int | None:
        return None

    @property
    def cwd(self) -> str | None:
        return None

    @abstractmethod
    def write_input(self, text: str) -> None:
        """Write text to the pane's input channel.

        Raises:
            PaneError: If the pane cannot accept input.
        """
        ...

    @abstractmethod
    def serialize_buffer(self) -> str:
        """Return the retained scrollback plus visible screen as text."""
        ...

    @property
    def supports_output_stream(self) -> bool:
        """Whether ``subscribe_output`` delivers raw output chunks."""
        return False

    def subscribe_output(self, callback: OutputCallback) -> Unsubscribe:
        """Register ``callback`` for every raw output chunk.

        Returns a callable that removes the subscription.

        Raises:
            PaneError: If the pane has no output stream.
        """
        raise PaneError(f"Pane {self.title!r} does not provide an output stream")


class SplitTab:
    """A tab whose area is split between several panes.

    Nested splits are flattened by ``get_all_panes()`` in layout order.
    Exactly one pane receives keyboard focus.
    """

    def __init__(
        self,
        children: list[Union[TerminalPane, SplitTab]],
        title: str = "",
        focused: TerminalPane | None = None,
    ) -> None:
        self._children = list(children)
        self._title = title
        panes = self.get_all_panes()
        self._focused = focused if focused is not None else (panes[0] if panes else None)

    @property
    def title(self) -> str:
        if self._title:
            return self._title
        if self._focused is not None:
            return self._focused.title
        return ""

    @property
    def children(self) -> list[Union[TerminalPane, SplitTab]]:
        return list(self._children)

    def get_all_panes(self) -> list[TerminalPane]:
        panes: list[TerminalPane] = []
        for child in self._children:
            if isinstance(child, SplitTab):
                panes.extend(child.get_all_panes())
            elif isinstance(child, TerminalPane):
                panes.append(child)
        return panes

    @property
    def focused_pane(self) -> TerminalPane | None:
        return self._focused

    def focus(self, pane: TerminalPane) -> None:
        if pane not in self.get_all_panes():
            raise PaneError(f"Pane {pane.title!r} is not part of this split")
        self._focused = pane


HostTab = Union[TerminalPane, SplitTab]


class TerminalHost(ABC):
    """The terminal application: an ordered list of tabs."""

    @property
    @abstractmethod
    def tabs(self) -> list[object]:
        """Tabs in display order. Non-terminal tabs may be present."""
        ...

    @property
    @abstractmethod
    def active_tab(self) -> object | None:
        ...

    @abstractmethod
    def select_tab(self, tab: object) -> None:
        """Bring ``tab`` to the foreground."""
        ...


def read_buffer(pane: TerminalPane) -> str:
    """Serialize a pane's buffer, returning an empty string on failure."""
    try:
        return pane.serialize_buffer()
    except Exception as e:
        logger.error("Error getting terminal buffer for %r: %s", pane.title, e)
        return ""


class PaneError(Exception):
    """Raised when a pane operation fails."""
