"""In-process terminal host made of pty-backed panes."""

from __future__ import annotations

import logging

from termbridge.config.settings import HostConfig
from termbridge.host.base import SplitTab, TerminalHost
from termbridge.host.pty_pane import PtyPane

logger = logging.getLogger(__name__)


class LocalHost(TerminalHost):
    """Owns a list of tabs whose panes are local shells.

    Example usage::

        host = LocalHost.from_config(settings.host)
        await host.start()
        ...
        await host.stop()
    """

    def __init__(self) -> None:
        self._tabs: list[PtyPane | SplitTab] = []
        self._active: PtyPane | SplitTab | None = None

    @classmethod
    def from_config(cls, config: HostConfig) -> LocalHost:
        host = cls()
        for index, tab in enumerate(config.tabs):
            shell = tab.shell_command or config.shell_command
            title = tab.title or f"Terminal {index}"
            panes = [
                PtyPane(
                    shell_command=shell,
                    title=title if tab.panes == 1 else f"{title} [{n}]",
                    rows=config.rows,
                    cols=config.cols,
                    scrollback_lines=config.scrollback_lines,
                )
                for n in range(tab.panes)
            ]
            if len(panes) == 1:
                host.add_tab(panes[0])
            else:
                host.add_tab(SplitTab(panes, title=title))
        return host

    @property
    def tabs(self) -> list[object]:
        return list(self._tabs)

    @property
    def active_tab(self) -> object | None:
        return self._active

    def select_tab(self, tab: object) -> None:
        if tab not in self._tabs:
            raise ValueError("Tab does not belong to this host")
        self._active = tab  # type: ignore[assignment]
        logger.debug("Selected tab %r", getattr(tab, "title", tab))

    def add_tab(self, tab: PtyPane | SplitTab) -> None:
        self._tabs.append(tab)
        if self._active is None:
            self._active = tab

    def _all_panes(self) -> list[PtyPane]:
        panes: list[PtyPane] = []
        for tab in self._tabs:
            if isinstance(tab, SplitTab):
                panes.extend(p for p in tab.get_all_panes() if isinstance(p, PtyPane))
            else:
                panes.append(tab)
        return panes

    async def start(self) -> None:
        """Start every pane's shell."""
        for pane in self._all_panes():
            await pane.start()
        logger.info("Local host started with %d tab(s)", len(self._tabs))

    async def stop(self) -> None:
        for pane in self._all_panes():
            await pane.stop()
        logger.info("Local host stopped")
