# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping

import aiohttp

from replay_mock_server.common.exceptions import UpstreamError
from replay_mock_server.common.mixins import ReplayLoggerMixin
from replay_mock_server.models import CanonicalRequest, SnapshotMetadata, SnapshotRecord
from replay_mock_server.transports.http_defaults import create_tcp_connector


class HttpUpstreamAdapter(ReplayLoggerMixin):
    """Performs the live HTTP call for a request that has no snapshot.

    The response body is read as raw bytes and never decoded, so binary
    payloads are recorded exactly as the origin sent them.
    """

    def __init__(
        self,
        timeout: float | None = None,
        verify_ssl: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.verify_ssl = verify_ssl
        self.tcp_connector: aiohttp.TCPConnector | None = None

    async def close(self) -> None:
        """Close the shared connector."""
        if self.tcp_connector:
            await self.tcp_connector.close()
            self.tcp_connector = None

    async def fetch(self, request: CanonicalRequest) -> SnapshotRecord | None:
        """Forward ``request`` upstream. Returns None when the call failed."""
        try:
            return await self._request(request)
        except UpstreamError as e:
            self.warning(str(e))
        except Exception as e:
            self.error(f"Error in upstream request to {request.href}: {e!r}")
        return None

    async def _request(self, request: CanonicalRequest) -> SnapshotRecord:
        self.debug(lambda: f"Sending {request.method} request to {request.href}")

        if self.tcp_connector is None:
            self.tcp_connector = create_tcp_connector(verify_ssl=self.verify_ssl)

        async with aiohttp.ClientSession(
            connector=self.tcp_connector,
            timeout=self.timeout,
            skip_auto_headers=[*request.headers.keys(), "User-Agent", "Accept-Encoding"],
            connector_owner=False,
        ) as session:
            async with session.request(
                request.method,
                request.href,
                headers=request.headers,
                data=request.body or None,
            ) as response:
                if not 200 <= response.status < 300:
                    raise UpstreamError(
                        f"Upstream responded {response.status} {response.reason}",
                        url=request.href,
                        status=response.status,
                    )
                payload = await response.read()
                metadata = SnapshotMetadata(
                    status=response.status,
                    reason=response.reason,
                    headers=_collect_headers(response.headers),
                    url=request.href,
                    method=request.method,
                )

        self.debug(lambda: f"Fetched {len(payload)} bytes from {request.href}")
        return SnapshotRecord(metadata=metadata, payload=payload)


def _collect_headers(headers: Mapping[str, str]) -> dict[str, str | list[str]]:
    """Flatten response headers, keeping every value of a repeated header."""
    collected: dict[str, list[str]] = {}
    # Multidict items() yields a repeated key once per value
    for key, value in headers.items():
        collected.setdefault(key, []).append(value)
    return {
        key: values[0] if len(values) == 1 else values
        for key, values in collected.items()
    }
