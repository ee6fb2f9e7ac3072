# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Pytest configuration and shared fixtures for replay mock server tests."""

import os
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from replay_mock_server.app import create_app
from replay_mock_server.common.enums import Protocol
from replay_mock_server.config import ENV_PREFIX, ReplayServerConfig
from replay_mock_server.models import (
    CanonicalRequest,
    InboundHttpCall,
    SnapshotMetadata,
    SnapshotRecord,
)
from replay_mock_server.normalizer import RequestNormalizer
from replay_mock_server.orchestrator import RecordReplayOrchestrator
from replay_mock_server.store import FileSnapshotStore, InMemorySnapshotStore
from replay_mock_server.transports import HttpUpstreamAdapter, WebSocketUpstreamAdapter

LISTEN_PORT = 9001
BINARY_PAYLOAD = bytes(range(256))

# ============================================================================
# Auto-use Fixtures (Applied to all tests)
# ============================================================================


@pytest.fixture(autouse=True)
def clean_server_env():
    """Remove REPLAY_SERVER_* variables written by config propagation."""
    yield
    for key in [key for key in os.environ if key.upper().startswith(ENV_PREFIX)]:
        del os.environ[key]


# ============================================================================
# Core Component Fixtures
# ============================================================================


@pytest.fixture
def snapshot_dir(tmp_path):
    return tmp_path / "snapshots"


@pytest.fixture
def server_config(snapshot_dir) -> ReplayServerConfig:
    return ReplayServerConfig(port=LISTEN_PORT, snapshot_dir=snapshot_dir)


@pytest.fixture
def normalizer() -> RequestNormalizer:
    return RequestNormalizer(listen_port=LISTEN_PORT)


@pytest.fixture
def file_store(snapshot_dir) -> FileSnapshotStore:
    return FileSnapshotStore(snapshot_dir)


@pytest.fixture
def memory_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


# ============================================================================
# Mock Fixtures
# ============================================================================


@pytest.fixture
def http_adapter(binary_record) -> AsyncMock:
    """Upstream HTTP adapter that always answers with ``binary_record``."""
    adapter = AsyncMock(spec=HttpUpstreamAdapter)
    adapter.fetch.return_value = binary_record
    return adapter


@pytest.fixture
def websocket_adapter(websocket_record) -> AsyncMock:
    """Upstream WebSocket adapter that always answers with ``websocket_record``."""
    adapter = AsyncMock(spec=WebSocketUpstreamAdapter)
    adapter.fetch.return_value = websocket_record
    return adapter


@pytest.fixture
def orchestrator(file_store, normalizer, http_adapter, websocket_adapter):
    return RecordReplayOrchestrator(
        store=file_store,
        normalizer=normalizer,
        http_adapter=http_adapter,
        websocket_adapter=websocket_adapter,
    )


@pytest.fixture
def test_client(server_config, orchestrator):
    """Create a FastAPI TestClient with the lifespan running."""
    with TestClient(create_app(server_config, orchestrator=orchestrator)) as client:
        yield client


# ============================================================================
# Request / Record Fixtures
# ============================================================================


@pytest.fixture
def sample_call() -> InboundHttpCall:
    return InboundHttpCall(
        method="GET",
        path="/http://api.example.com/v1/users",
        headers={"host": f"localhost:{LISTEN_PORT}", "user-agent": "pytest"},
    )


@pytest.fixture
def sample_request() -> CanonicalRequest:
    return CanonicalRequest(
        protocol=Protocol.HTTP,
        host="api.example.com",
        pathname="/v1/users",
        href="http://api.example.com/v1/users",
        method="GET",
        headers={"User-Agent": "pytest", "Authorization": "Bearer token"},
    )


@pytest.fixture
def binary_record() -> SnapshotRecord:
    return SnapshotRecord(
        metadata=SnapshotMetadata(
            status=200,
            reason="OK",
            headers={"Content-Type": "application/octet-stream", "X-Upstream": "1"},
            url="http://api.example.com/v1/users",
            method="GET",
        ),
        payload=BINARY_PAYLOAD,
    )


@pytest.fixture
def websocket_record() -> SnapshotRecord:
    return SnapshotRecord(
        metadata=SnapshotMetadata(url="http://rpc.example.com/", method="websocket"),
        payload=b'{"op":"pong","seq":1}',
    )
