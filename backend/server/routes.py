"""
Route registration for the link control API.

Responsibilities:
- Define HTTP and WebSocket endpoints
- Translate requests into LinkSession operations
- Pull dependencies from app.state
"""

from __future__ import annotations

import asyncio
import json
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from observability.logger import log_event
from orchestrator.notifications import Notification
from server.schemas import ConnectRequest
from session.companion import CompanionSendError
from session.link_session import LinkSession


class WebSocketCompanionChannel:
    """Companion channel backed by one relay WebSocket."""

    def __init__(self, ws: WebSocket) -> None:
        self._ws = ws

    async def send_command(self, command: str) -> None:
        try:
            await self._ws.send_json({"command": command})
        except (WebSocketDisconnect, RuntimeError) as e:
            raise CompanionSendError(str(e) or type(e).__name__) from e


def register_routes(app: FastAPI) -> None:
    """Register all routes on the FastAPI app."""

    def _session() -> LinkSession:
        return app.state.session

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @app.get("/health")
    async def health() -> dict[str, str]: # pyright: ignore[reportUnusedFunction]
        return {"status": "ok"}

    @app.get("/status")
    async def status() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        return _session().snapshot()

    # ------------------------------------------------------------------
    # Connection control
    # ------------------------------------------------------------------

    @app.post("/connect")
    async def connect( # pyright: ignore[reportUnusedFunction]
        request: ConnectRequest,
    ) -> dict[str, Any]:
        session = _session()
        await session.connect(request.host, request.port)
        return session.snapshot()

    @app.post("/disconnect")
    async def disconnect() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.disconnect()
        return session.snapshot()

    # ------------------------------------------------------------------
    # Network availability / lifecycle signals
    # ------------------------------------------------------------------

    @app.post("/network/available")
    async def network_available() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.network_became_available()
        return session.snapshot()

    @app.post("/network/unavailable")
    async def network_unavailable() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.network_became_unavailable()
        return session.snapshot()

    @app.post("/lifecycle/background")
    async def lifecycle_background() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.entered_background()
        return session.snapshot()

    @app.post("/lifecycle/foreground")
    async def lifecycle_foreground() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.entered_foreground()
        return session.snapshot()

    # ------------------------------------------------------------------
    # Workout control
    # ------------------------------------------------------------------

    @app.post("/workout/start")
    async def workout_start() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.request_workout(start=True)
        return session.snapshot()

    @app.post("/workout/stop")
    async def workout_stop() -> dict[str, Any]: # pyright: ignore[reportUnusedFunction]
        session = _session()
        await session.request_workout(start=False)
        return session.snapshot()

    # ------------------------------------------------------------------
    # Companion relay
    # ------------------------------------------------------------------

    @app.websocket("/companion")
    async def companion_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()
        session = _session()
        channel = WebSocketCompanionChannel(ws)
        session.attach_companion_channel(channel)
        await session.companion_reachability_changed(True)

        try:
            while True:
                text = await ws.receive_text()
                try:
                    payload = json.loads(text)
                except ValueError:
                    log_event({
                        "event_type": "COMPANION_INVALID_JSON",
                        "session_id": session.session_id,
                        "length": len(text),
                    })
                    continue

                if isinstance(payload, dict):
                    await session.on_companion_message(payload)

        except WebSocketDisconnect:
            pass

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "endpoint": "companion",
                "session_id": session.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            session.detach_companion_channel(channel)
            if session.companion_channel is None:
                await session.companion_reachability_changed(False)

    # ------------------------------------------------------------------
    # Notification stream
    # ------------------------------------------------------------------

    @app.websocket("/events")
    async def events_endpoint(ws: WebSocket) -> None: # pyright: ignore[reportUnusedFunction]
        await ws.accept()
        session = _session()
        queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()

        def _enqueue(notification: Notification) -> None:
            queue.put_nowait(notification.to_dict())

        unsubscribe = session.subscribe(_enqueue)
        log_event({
            "event_type": "WS_EVENTS_SUBSCRIBED",
            "session_id": session.session_id,
            "subscribers": session.notifier.subscriber_count(),
        })

        async def _pump() -> None:
            while True:
                await ws.send_json(await queue.get())

        pump = asyncio.create_task(_pump())
        try:
            # Inbound frames are ignored; receive only to observe the close
            while True:
                await ws.receive_text()

        except WebSocketDisconnect:
            pass

        except Exception as exc:  # pylint: disable=broad-exception-caught
            log_event({
                "event_type": "WS_FATAL_ERROR",
                "endpoint": "events",
                "session_id": session.session_id,
                "exception": type(exc).__name__,
                "message": str(exc),
            })

        finally:
            unsubscribe()
            pump.cancel()
