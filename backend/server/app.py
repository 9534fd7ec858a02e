"""
FastAPI app factory.

Responsibilities:
- Create and configure FastAPI app
- Set up middleware
- Build the process-wide LinkSession and its collaborators
- Register routes
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.osc.udp import UdpOscTransport
from config import AppConfig
from observability import logger
from orchestrator.runtime_context import ConfigStoreProtocol, TransportProtocol
from session.link_session import LinkSession
from session.settings_store import JsonSettingsStore

from server.routes import register_routes


def create_app(
    config: AppConfig | None = None,
    *,
    transport: TransportProtocol | None = None,
    settings_store: ConfigStoreProtocol | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators default to the OSC/UDP transport and the JSON settings
    file; tests pass fakes instead.
    """
    config = config or AppConfig.load_from_env()
    logger.set_enabled(config.enable_json_logs)

    owned_transport = UdpOscTransport() if transport is None else None
    session = LinkSession(
        transport=transport or owned_transport,
        settings_store=settings_store or JsonSettingsStore(config.settings_path),
    )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if config.auto_connect:
            await session.connect_saved()
        try:
            yield
        finally:
            await session.will_terminate()
            if owned_transport is not None:
                owned_transport.close()

    app = FastAPI(title="Pulse Bridge API", lifespan=lifespan)

    app.state.config = config
    app.state.session = session

    # Middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # tighten later
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routes
    register_routes(app)

    return app
