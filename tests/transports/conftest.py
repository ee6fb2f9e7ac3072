# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Shared fixtures and helpers for the upstream adapter tests."""

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, Mock

import aiohttp
import orjson
import pytest

from replay_mock_server.transports import HttpUpstreamAdapter, WebSocketUpstreamAdapter


@pytest.fixture
async def http_upstream():
    adapter = HttpUpstreamAdapter(timeout=30.0, verify_ssl=False)
    yield adapter
    await adapter.close()


@pytest.fixture
def websocket_upstream() -> WebSocketUpstreamAdapter:
    return WebSocketUpstreamAdapter(timeout=30.0, verify_ssl=False)


def create_mock_response(
    status: int = 200,
    reason: str = "OK",
    headers: dict[str, str] | None = None,
    body: bytes = b'{"success": true}',
) -> Mock:
    """Create a standardized mock aiohttp.ClientResponse."""
    return Mock(
        spec=aiohttp.ClientResponse,
        status=status,
        reason=reason,
        headers=headers if headers is not None else {"Content-Type": "application/json"},
        read=AsyncMock(return_value=body),
    )


def _async_context(value: Any) -> AsyncMock:
    context = AsyncMock()
    context.__aenter__ = AsyncMock(return_value=value)
    context.__aexit__ = AsyncMock(return_value=None)
    return context


def setup_mock_session(mock_session_class: Mock, mock_response: Mock) -> Mock:
    """Make ``aiohttp.ClientSession(...)`` yield a session whose request returns ``mock_response``."""
    mock_session = Mock()
    mock_session.request = Mock(return_value=_async_context(mock_response))
    mock_session_class.side_effect = lambda *args, **kwargs: _async_context(mock_session)
    return mock_session


def ws_frame(data: Any, msg_type: aiohttp.WSMsgType = aiohttp.WSMsgType.TEXT) -> Mock:
    return Mock(type=msg_type, data=data)


class FakeClientWebSocket:
    """Stands in for aiohttp.ClientWebSocketResponse.

    ``responder`` receives the decoded envelope that was sent and returns the
    frames the server answers with.
    """

    def __init__(self, responder: Callable[[dict[str, Any]], list[Mock]]) -> None:
        self.responder = responder
        self.sent: list[dict[str, Any]] = []

    async def send_str(self, data: str) -> None:
        self.sent.append(orjson.loads(data))

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for frame in self.responder(self.sent[-1]):
            yield frame


def setup_mock_ws_session(mock_session_class: Mock, ws: FakeClientWebSocket) -> Mock:
    """Make ``aiohttp.ClientSession(...).ws_connect(...)`` yield ``ws``."""
    mock_session = Mock()
    mock_session.ws_connect = Mock(return_value=_async_context(ws))
    mock_session_class.side_effect = lambda *args, **kwargs: _async_context(mock_session)
    return mock_session
