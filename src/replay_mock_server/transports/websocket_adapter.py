# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
import uuid
from typing import Any

import aiohttp
import orjson

from replay_mock_server.common.exceptions import UpstreamError
from replay_mock_server.common.mixins import ReplayLoggerMixin
from replay_mock_server.models import CanonicalRequest, SnapshotMetadata, SnapshotRecord

_NO_REPLY = object()


class WebSocketUpstreamAdapter(ReplayLoggerMixin):
    """Performs one live WebSocket RPC exchange for a request without snapshot.

    A fresh connection is opened for every message and closed after the
    reply, so nothing is pooled between exchanges. Frames are JSON envelopes
    ``{"id": ..., "data": ...}``; the reply is the first frame whose ``id``
    matches the one sent, any other traffic on the channel is skipped.
    """

    def __init__(
        self,
        timeout: float | None = None,
        verify_ssl: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.timeout = timeout
        self.verify_ssl = verify_ssl

    async def close(self) -> None:
        """Nothing is pooled, so there is nothing to release."""

    async def fetch(self, request: CanonicalRequest) -> SnapshotRecord | None:
        """Send the request payload upstream and wait for its reply."""
        try:
            reply = await self._exchange(request.href, orjson.loads(request.body))
        except UpstreamError as e:
            self.warning(str(e))
            return None
        except Exception as e:
            self.error(f"Error in upstream WebSocket exchange with {request.href}: {e!r}")
            return None

        self.debug(lambda: f"Got response from proxied server {request.href}")
        return SnapshotRecord(
            metadata=SnapshotMetadata(url=request.href, method=request.method),
            payload=orjson.dumps(reply),
        )

    async def _exchange(self, url: str, data: Any) -> Any:
        correlation_id = uuid.uuid4().hex
        async with aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=self.timeout)
        ) as session:
            async with session.ws_connect(
                url, ssl=self.verify_ssl, receive_timeout=self.timeout
            ) as ws:
                await ws.send_str(
                    orjson.dumps({"id": correlation_id, "data": data}).decode()
                )
                async for message in ws:
                    reply = self._match_reply(message, correlation_id, url)
                    if reply is not _NO_REPLY:
                        return reply
                    if message.type in (aiohttp.WSMsgType.ERROR, aiohttp.WSMsgType.CLOSE):
                        break

        raise UpstreamError("Connection closed before a reply was received", url=url)

    def _match_reply(
        self, message: aiohttp.WSMessage, correlation_id: str, url: str
    ) -> Any:
        """Return the reply data if ``message`` answers ``correlation_id``."""
        if message.type not in (aiohttp.WSMsgType.TEXT, aiohttp.WSMsgType.BINARY):
            return _NO_REPLY
        try:
            envelope = orjson.loads(message.data)
        except orjson.JSONDecodeError:
            self.debug(lambda: f"Skipping non-JSON frame: {message.data!r:.80}")
            return _NO_REPLY
        if not isinstance(envelope, dict) or envelope.get("id") != correlation_id:
            return _NO_REPLY
        if "error" in envelope:
            raise UpstreamError(f"Upstream replied with error {envelope['error']!r}", url=url)
        return envelope.get("data")
