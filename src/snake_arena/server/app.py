"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from snake_arena.net.host import HostSession
from snake_arena.server.routes import router
from snake_arena.server.websocket import ws_router


def create_app(session: HostSession | None = None) -> FastAPI:
    """Build the operator API around *session* (a fresh one by default)."""

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        app.state.session = session if session is not None else HostSession()
        yield
        await app.state.session.cleanup()

    app = FastAPI(
        title="Snake Arena API", version="0.1.0", lifespan=_lifespan,
    )
    app.include_router(router)
    app.include_router(ws_router)
    return app
