"""FastAPI HTTP server exposing the terminal tools.

One POST per tool, plus health, tool listing and recent logs:

    GET  /health           -> {"status": "ok", "sessions": 2, ...}
    GET  /tools            -> [{"name": ..., "description": ..., "parameters": {...}}]
    POST /tools/{name}     <- {"command": "ls", "sessionId": "..."}
    GET  /logs?level=info  -> [{"timestamp": ..., "level": ..., "message": ...}]
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import uvicorn
from fastapi import Body, FastAPI, HTTPException

from termbridge import __version__
from termbridge.capture import create_capture
from termbridge.config.settings import Settings
from termbridge.execution.confirm import confirm_hook_from_config
from termbridge.execution.controller import CommandExecutor, ConfirmHook
from termbridge.host.base import TerminalHost
from termbridge.sessions.registry import InvalidLocatorError, SessionRegistry
from termbridge.shell.detector import ShellDetector
from termbridge.tools.terminal import TerminalTools, ToolParamsError, UnknownToolError
from termbridge.utils.logging import get_recent_logs

logger = logging.getLogger(__name__)


def build_tools(
    host: TerminalHost,
    settings: Settings | None = None,
    confirm: ConfirmHook | None = None,
) -> TerminalTools:
    """Wire registry, detector, capture strategy and executor for ``host``."""
    if settings is None:
        settings = Settings()
    execution = settings.execution
    if confirm is None:
        confirm = confirm_hook_from_config(settings.pair_programming)
    executor = CommandExecutor(
        registry=SessionRegistry(host),
        capture=create_capture(execution),
        detector=ShellDetector(),
        confirm=confirm,
        auto_focus=settings.pair_programming.enabled and settings.pair_programming.auto_focus_terminal,
        default_timeout_ms=execution.default_timeout_ms,
        max_timeout_ms=execution.max_timeout_ms,
    )
    return TerminalTools(executor)


def create_app(
    tools: TerminalTools | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Without ``tools`` the app starts a local pty host from ``settings``
    on startup and stops it on shutdown.
    """
    if settings is None:
        settings = Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        host = None
        if app.state.tools is None:
            from termbridge.host.local import LocalHost

            host = LocalHost.from_config(settings.host)
            await host.start()
            app.state.tools = build_tools(host, settings)
        logger.info("Endpoint started")
        yield
        if host is not None:
            await host.stop()
        logger.info("Endpoint stopped")

    app = FastAPI(
        title="termbridge",
        description="Structured command execution over terminal panes",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.tools = tools

    @app.get("/health")
    async def health_check() -> dict[str, Any]:
        t: TerminalTools | None = app.state.tools
        sessions = await t.get_session_list() if t is not None else []
        return {
            "status": "ok",
            "version": __version__,
            "sessions": len(sessions),
            "captureStrategy": settings.execution.capture_strategy,
        }

    @app.get("/tools")
    async def list_tools() -> list[dict[str, Any]]:
        t: TerminalTools = app.state.tools
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.params.model_json_schema(by_alias=True),
            }
            for spec in t.tools
        ]

    @app.post("/tools/{name}")
    async def call_tool(name: str, params: dict[str, Any] | None = Body(default=None)) -> Any:
        t: TerminalTools = app.state.tools
        try:
            return await t.call(name, params or {})
        except UnknownToolError as e:
            raise HTTPException(status_code=404, detail=str(e)) from e
        except (ToolParamsError, InvalidLocatorError) as e:
            raise HTTPException(status_code=422, detail=str(e)) from e

    @app.get("/logs")
    async def recent_logs(level: str | None = None) -> list[dict[str, Any]]:
        return get_recent_logs(level)

    return app


def main() -> None:
    """Entry point for running the endpoint server standalone."""
    settings = Settings()
    uvicorn.run(create_app(settings=settings), host=settings.server.host, port=settings.server.port)


if __name__ == "__main__":
    main()
