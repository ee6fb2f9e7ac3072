# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
import asyncio
from typing import Any

from replay_mock_server.common.enums import Protocol, ReplayOutcome
from replay_mock_server.common.exceptions import (
    StoreWriteError,
    UnresolvableTargetError,
)
from replay_mock_server.common.mixins import ReplayLoggerMixin
from replay_mock_server.common.protocols import (
    SnapshotStoreProtocol,
    UpstreamAdapterProtocol,
)
from replay_mock_server.fingerprint import fingerprint
from replay_mock_server.models import (
    CanonicalRequest,
    InboundHttpCall,
    ReplayResult,
    SnapshotKey,
    SnapshotRecord,
)
from replay_mock_server.normalizer import RequestNormalizer

FetchResult = tuple[SnapshotRecord | None, bool]


class RecordReplayOrchestrator(ReplayLoggerMixin):
    """Serve known requests from snapshots and record unknown ones.

    Every call goes through the same steps regardless of protocol:
    normalize, fingerprint, look up the snapshot, and on a miss fetch live
    through the protocol's adapter and save the result.

    Upstream fetches run as tracked tasks that are shielded from the inbound
    call, so a client hanging up never aborts a recording half way. With
    ``coalesce_inflight`` enabled, concurrent misses for one fingerprint
    share a single upstream fetch instead of racing to write the same
    snapshot.
    """

    def __init__(
        self,
        store: SnapshotStoreProtocol,
        normalizer: RequestNormalizer,
        http_adapter: UpstreamAdapterProtocol,
        websocket_adapter: UpstreamAdapterProtocol,
        coalesce_inflight: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.store = store
        self.normalizer = normalizer
        self.adapters: dict[Protocol, UpstreamAdapterProtocol] = {
            Protocol.HTTP: http_adapter,
            Protocol.WEBSOCKET: websocket_adapter,
        }
        self.coalesce_inflight = coalesce_inflight
        self._tasks: set[asyncio.Task[FetchResult]] = set()
        self._inflight: dict[str, asyncio.Task[FetchResult]] = {}

    @property
    def pending_fetches(self) -> int:
        return len(self._tasks)

    async def handle_http(self, call: InboundHttpCall) -> ReplayResult:
        """Record or replay one inbound HTTP call."""
        try:
            request = self.normalizer.normalize_http(call)
        except UnresolvableTargetError as e:
            self.warning(str(e))
            return ReplayResult(outcome=ReplayOutcome.REJECTED)

        self.debug(lambda: f"[http] proxying {request.method} {request.href}")
        return await self.replay(request)

    async def handle_websocket(self, target: str, data: Any) -> ReplayResult:
        """Record or replay one WebSocket RPC message sent to ``target``."""
        try:
            request = self.normalizer.normalize_websocket(target, data)
        except (UnresolvableTargetError, TypeError) as e:
            self.warning(f"Rejected WebSocket message for {target}: {e!r}")
            return ReplayResult(outcome=ReplayOutcome.REJECTED)

        self.debug(lambda: f"[websocket] proxying message to {request.href}")
        return await self.replay(request)

    async def replay(self, request: CanonicalRequest) -> ReplayResult:
        """Serve ``request`` from its snapshot, fetching and saving it on a miss."""
        request_fingerprint = fingerprint(request)
        key = self.store.locate(
            request.host, request.pathname, request.method, request_fingerprint
        )

        record = await self.store.load(key)
        if record is not None:
            return ReplayResult(
                outcome=ReplayOutcome.REPLAYED,
                request=request,
                fingerprint=request_fingerprint,
                record=record,
                persisted=True,
            )

        self.debug(lambda: f"No snapshot for {request.href}, fetching from remote")

        task = self._inflight.get(request_fingerprint) if self.coalesce_inflight else None
        if task is None:
            task = self._start_fetch(request, key, request_fingerprint)
        else:
            self.debug(lambda: f"Joining in-flight fetch of {request.href}")

        record, persisted = await asyncio.shield(task)
        if record is None:
            return ReplayResult(
                outcome=ReplayOutcome.FAILED,
                request=request,
                fingerprint=request_fingerprint,
            )

        return ReplayResult(
            outcome=ReplayOutcome.RECORDED,
            request=request,
            fingerprint=request_fingerprint,
            record=record,
            persisted=persisted,
        )

    def _start_fetch(
        self, request: CanonicalRequest, key: SnapshotKey, request_fingerprint: str
    ) -> asyncio.Task[FetchResult]:
        task = asyncio.create_task(
            self._fetch_and_save(request, key),
            name=f"fetch-{request_fingerprint[:12]}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

        if self.coalesce_inflight:
            self._inflight[request_fingerprint] = task

            def _forget(done: asyncio.Task[FetchResult]) -> None:
                if self._inflight.get(request_fingerprint) is done:
                    del self._inflight[request_fingerprint]

            task.add_done_callback(_forget)
        return task

    async def _fetch_and_save(
        self, request: CanonicalRequest, key: SnapshotKey
    ) -> FetchResult:
        adapter = self.adapters[request.protocol]
        try:
            record = await adapter.fetch(request)
        except Exception as e:
            self.error(f"Upstream adapter failed for {request.href}: {e!r}")
            return None, False

        if record is None:
            return None, False

        try:
            await self.store.save(key, record)
        except StoreWriteError as e:
            # The data was still fetched, so it is served even if not persisted
            self.error(f"Serving unsaved response for {request.href}: {e!r}")
            return record, False
        return record, True

    async def drain(self, timeout: float | None) -> None:
        """Wait up to ``timeout`` seconds for in-flight fetches, then cancel the rest."""
        if not self._tasks:
            return

        self.info(
            f"Waiting up to {timeout}s for {len(self._tasks)} in-flight snapshot fetches"
        )
        _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        if pending:
            self.warning(
                f"Cancelling {len(pending)} fetches that did not finish within the grace period"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

    async def close(self) -> None:
        """Release the resources held by the upstream adapters."""
        for adapter in self.adapters.values():
            await adapter.close()
