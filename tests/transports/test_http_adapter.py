# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for the upstream HTTP adapter."""

from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest
from multidict import CIMultiDict, CIMultiDictProxy

from replay_mock_server.transports import HttpUpstreamAdapter
from replay_mock_server.transports.http_defaults import (
    AioHttpDefaults,
    create_tcp_connector,
)

from tests.transports.conftest import create_mock_response, setup_mock_session


@pytest.fixture(autouse=True)
def mock_connector():
    with patch(
        "replay_mock_server.transports.http_adapter.create_tcp_connector"
    ) as mock_create:
        mock_create.return_value = Mock(close=AsyncMock())
        yield mock_create


class TestHttpUpstreamAdapter:
    """Test suite for HttpUpstreamAdapter."""

    def test_init(self) -> None:
        adapter = HttpUpstreamAdapter(timeout=600.0, verify_ssl=False)

        assert isinstance(adapter.timeout, aiohttp.ClientTimeout)
        assert adapter.timeout.total == 600.0
        assert adapter.verify_ssl is False
        assert adapter.tcp_connector is None

    async def test_successful_binary_request(self, http_upstream, sample_request) -> None:
        payload = bytes(range(256))
        response = create_mock_response(
            headers={"Content-Type": "image/png", "ETag": "abc"}, body=payload
        )
        with patch("aiohttp.ClientSession") as mock_session_class:
            setup_mock_session(mock_session_class, response)

            record = await http_upstream.fetch(sample_request)

        assert record is not None
        assert record.payload == payload
        assert record.metadata.status == 200
        assert record.metadata.reason == "OK"
        assert record.metadata.headers == {"Content-Type": "image/png", "ETag": "abc"}
        assert record.metadata.content_type == "image/png"
        assert record.metadata.url == sample_request.href
        assert record.metadata.method == "GET"

    async def test_repeated_headers_keep_every_value(
        self, http_upstream, sample_request
    ) -> None:
        headers = CIMultiDict(
            [
                ("Content-Type", "text/html"),
                ("Set-Cookie", "a=1"),
                ("Set-Cookie", "b=2"),
            ]
        )
        with patch("aiohttp.ClientSession") as mock_session_class:
            setup_mock_session(
                mock_session_class, create_mock_response(headers=CIMultiDictProxy(headers))
            )

            record = await http_upstream.fetch(sample_request)

        assert record is not None
        assert record.metadata.headers == {
            "Content-Type": "text/html",
            "Set-Cookie": ["a=1", "b=2"],
        }
        assert record.metadata.content_type == "text/html"

    async def test_request_arguments(self, http_upstream, sample_request) -> None:
        request = sample_request.model_copy(update={"method": "POST", "body": b"\x00\x01"})
        with patch("aiohttp.ClientSession") as mock_session_class:
            session = setup_mock_session(mock_session_class, create_mock_response())

            await http_upstream.fetch(request)

        session.request.assert_called_once_with(
            "POST",
            request.href,
            headers=request.headers,
            data=b"\x00\x01",
        )
        _, session_kwargs = mock_session_class.call_args
        assert "User-Agent" in session_kwargs["skip_auto_headers"]
        assert session_kwargs["connector_owner"] is False

    async def test_empty_body_sends_no_data(self, http_upstream, sample_request) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            session = setup_mock_session(mock_session_class, create_mock_response())

            await http_upstream.fetch(sample_request)

        assert session.request.call_args.kwargs["data"] is None

    async def test_connector_is_created_once(
        self, http_upstream, sample_request, mock_connector
    ) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            setup_mock_session(mock_session_class, create_mock_response())

            await http_upstream.fetch(sample_request)
            await http_upstream.fetch(sample_request)

        mock_connector.assert_called_once_with(verify_ssl=False)

    @pytest.mark.parametrize(
        "status_code,reason",
        [
            (301, "Moved Permanently"),
            (404, "Not Found"),
            (500, "Internal Server Error"),
            (503, "Service Unavailable"),
        ],
    )
    async def test_http_error_yields_nothing(
        self, http_upstream, sample_request, status_code, reason
    ) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            response = create_mock_response(status=status_code, reason=reason)
            setup_mock_session(mock_session_class, response)

            assert await http_upstream.fetch(sample_request) is None

        response.read.assert_not_awaited()

    @pytest.mark.parametrize(
        "exception",
        [
            aiohttp.ClientConnectionError("Connection refused"),
            ConnectionError("Network connection failed"),
            TimeoutError(),
        ],
    )
    async def test_transport_errors_yield_nothing(
        self, http_upstream, sample_request, exception
    ) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            mock_session_class.side_effect = exception

            assert await http_upstream.fetch(sample_request) is None

    async def test_close(self, http_upstream, sample_request, mock_connector) -> None:
        with patch("aiohttp.ClientSession") as mock_session_class:
            setup_mock_session(mock_session_class, create_mock_response())
            await http_upstream.fetch(sample_request)

        connector = http_upstream.tcp_connector
        await http_upstream.close()

        connector.close.assert_awaited_once()
        assert http_upstream.tcp_connector is None

    async def test_close_without_connector(self, http_upstream) -> None:
        await http_upstream.close()
        assert http_upstream.tcp_connector is None


class TestCreateTcpConnector:
    def test_defaults(self) -> None:
        with patch("aiohttp.TCPConnector") as mock_connector_class:
            create_tcp_connector(verify_ssl=False)

        kwargs = mock_connector_class.call_args.kwargs
        assert kwargs["ssl"] is False
        assert kwargs["limit"] == AioHttpDefaults.LIMIT
        assert kwargs["keepalive_timeout"] == AioHttpDefaults.KEEPALIVE_TIMEOUT

    def test_overrides(self) -> None:
        with patch("aiohttp.TCPConnector") as mock_connector_class:
            create_tcp_connector(limit=5)

        kwargs = mock_connector_class.call_args.kwargs
        assert kwargs["ssl"] is True
        assert kwargs["limit"] == 5
