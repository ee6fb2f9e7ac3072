# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from typing import Protocol, runtime_checkable

from replay_mock_server.models import CanonicalRequest, SnapshotKey, SnapshotRecord

################################################################################
# Snapshot Storage
################################################################################


@runtime_checkable
class SnapshotStoreProtocol(Protocol):
    """Key -> snapshot mapping used by the orchestrator.

    ``load`` must fail open: any unreadable entry is reported as a miss.
    """

    def locate(
        self, host: str, pathname: str, method: str, fingerprint: str
    ) -> SnapshotKey: ...

    async def load(self, key: SnapshotKey) -> SnapshotRecord | None: ...

    async def save(self, key: SnapshotKey, record: SnapshotRecord) -> None: ...


################################################################################
# Upstream Adapters
################################################################################


@runtime_checkable
class UpstreamAdapterProtocol(Protocol):
    """Performs the live call for a request that has no snapshot.

    ``fetch`` never raises; it returns None when no result was obtained.
    """

    async def fetch(self, request: CanonicalRequest) -> SnapshotRecord | None: ...

    async def close(self) -> None: ...
