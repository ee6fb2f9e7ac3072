# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import orjson
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect, status
from fastapi.responses import Response

from replay_mock_server import __version__
from replay_mock_server.common.exceptions import (
    ConfigurationError,
    UnresolvableTargetError,
)
from replay_mock_server.common.logger import ReplayLogger
from replay_mock_server.config import ReplayServerConfig
from replay_mock_server.models import InboundHttpCall
from replay_mock_server.normalizer import RequestNormalizer
from replay_mock_server.orchestrator import RecordReplayOrchestrator
from replay_mock_server.store import FileSnapshotStore
from replay_mock_server.transports import HttpUpstreamAdapter, WebSocketUpstreamAdapter

logger = ReplayLogger(__name__)


def build_orchestrator(config: ReplayServerConfig) -> RecordReplayOrchestrator:
    """Wire the snapshot store, normalizer and upstream adapters from config."""
    if config.snapshot_dir.exists() and not config.snapshot_dir.is_dir():
        raise ConfigurationError(
            f"Snapshot directory {config.snapshot_dir} exists and is not a directory"
        )

    return RecordReplayOrchestrator(
        store=FileSnapshotStore(config.snapshot_dir),
        normalizer=RequestNormalizer(listen_port=config.port),
        http_adapter=HttpUpstreamAdapter(
            timeout=config.upstream_timeout, verify_ssl=config.verify_ssl
        ),
        websocket_adapter=WebSocketUpstreamAdapter(
            timeout=config.upstream_timeout, verify_ssl=config.verify_ssl
        ),
        coalesce_inflight=config.coalesce_inflight,
    )


def create_app(
    config: ReplayServerConfig | None = None,
    orchestrator: RecordReplayOrchestrator | None = None,
) -> FastAPI:
    """Create the replay mock server application.

    Without arguments the configuration is read from ``REPLAY_SERVER_*``
    environment variables, which is how uvicorn's app factory calls it.
    """
    if config is None:
        config = ReplayServerConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.orchestrator = orchestrator or build_orchestrator(config)
        logger.info(
            f"[server] mock server listening on port {config.port}, "
            f"snapshots in {config.snapshot_dir}"
        )
        try:
            yield
        finally:
            await app.state.orchestrator.drain(config.shutdown_grace_period)
            await app.state.orchestrator.close()
            logger.info("[server] mock server closed")

    app = FastAPI(
        title="Replay Mock Server",
        version=__version__,
        lifespan=lifespan,
        # Every path belongs to the proxied origins
        openapi_url=None,
        docs_url=None,
        redoc_url=None,
    )
    app.state.config = config

    # ========================================================================
    # WebSocket RPC
    # ========================================================================

    @app.websocket(config.websocket_path)
    async def record_replay_websocket(websocket: WebSocket) -> None:
        """Proxy RPC messages to the origin named by the ``url`` query parameter."""
        orchestrator_: RecordReplayOrchestrator = websocket.app.state.orchestrator
        try:
            target = orchestrator_.normalizer.resolve_websocket_target(
                websocket.query_params.get("url")
            )
        except UnresolvableTargetError as e:
            logger.warning(f"[websocket] {e}")
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        await websocket.accept()
        logger.debug(lambda: f"[websocket] a client connected proxying {target}")

        send_lock = asyncio.Lock()
        exchanges: set[asyncio.Task] = set()
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text") or message.get("bytes")
                if not raw:
                    continue
                task = asyncio.create_task(
                    _handle_exchange(websocket, send_lock, orchestrator_, target, raw)
                )
                exchanges.add(task)
                task.add_done_callback(exchanges.discard)
        except WebSocketDisconnect:
            pass
        finally:
            # Recordings are shielded inside the orchestrator; only replies die here
            for task in exchanges:
                task.cancel()
            await asyncio.gather(*exchanges, return_exceptions=True)
            logger.debug(lambda: f"[websocket] client proxying {target} disconnected")

    # ========================================================================
    # HTTP
    # ========================================================================

    async def record_replay_http(request: Request) -> Response:
        """Replay or record any HTTP call."""
        call = InboundHttpCall(
            method=request.method,
            path=request.scope["path"],
            query=request.scope.get("query_string", b"").decode("latin-1"),
            headers=dict(request.headers),
            body=await request.body(),
        )
        result = await request.app.state.orchestrator.handle_http(call)
        if result.record is None:
            return Response(content=b"")

        headers = {}
        if content_type := result.record.metadata.content_type:
            headers["Content-Type"] = content_type

        logger.debug(lambda: f"[http] serving {result.outcome} data to client")
        return Response(content=result.record.payload, headers=headers)

    # Registered without a method list so every verb reaches the origin
    app.add_route("/{path:path}", record_replay_http, methods=None, include_in_schema=False)

    return app


async def _handle_exchange(
    websocket: WebSocket,
    send_lock: asyncio.Lock,
    orchestrator: RecordReplayOrchestrator,
    target: str,
    raw: str | bytes,
) -> None:
    """Answer one ``{"id", "data"}`` frame with ``{"id", "data"}`` or ``{"id", "error"}``."""
    try:
        envelope = orjson.loads(raw)
    except orjson.JSONDecodeError:
        await _send(websocket, send_lock, {"id": None, "error": "Invalid JSON payload."})
        return

    if not isinstance(envelope, dict) or "data" not in envelope:
        message_id = envelope.get("id") if isinstance(envelope, dict) else None
        await _send(
            websocket,
            send_lock,
            {"id": message_id, "error": "Expected an object with 'id' and 'data'."},
        )
        return

    message_id = envelope.get("id")
    logger.debug(lambda: f"[websocket] received message {message_id} for {target}")
    result = await orchestrator.handle_websocket(target, envelope["data"])

    reply: dict[str, Any] = {"id": message_id}
    try:
        if result.record is None:
            reply["error"] = f"No response available ({result.outcome})"
        else:
            reply["data"] = result.websocket_reply()
    except orjson.JSONDecodeError as e:
        logger.error(f"[websocket] stored reply for {target} is not JSON: {e!r}")
        reply["error"] = "Stored response is not valid JSON."

    await _send(websocket, send_lock, reply)


async def _send(websocket: WebSocket, send_lock: asyncio.Lock, reply: dict[str, Any]) -> None:
    async with send_lock:
        await websocket.send_text(orjson.dumps(reply).decode())
