# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Snapshot storage backends."""

from pathlib import Path

import aiofiles
import aiofiles.os
import orjson

from replay_mock_server.common.exceptions import SnapshotCorruptError, StoreWriteError
from replay_mock_server.common.mixins import ReplayLoggerMixin
from replay_mock_server.models import SnapshotKey, SnapshotMetadata, SnapshotRecord


def snapshot_key(host: str, pathname: str, method: str, fingerprint: str) -> SnapshotKey:
    """Build the store-relative key of a snapshot.

    A pathname ending in ``/`` gets ``index`` appended so that a directory
    and a file never collide.
    """
    if pathname.endswith("/"):
        pathname = f"{pathname}index"
    return SnapshotKey(path=f"{host}{pathname}.{method}.{fingerprint}")


class FileSnapshotStore(ReplayLoggerMixin):
    """Filesystem snapshot store.

    Each snapshot is two sibling files under ``root``: ``<key>.json`` holding
    the response metadata and ``<key>.data`` holding the raw payload bytes.
    There is no locking; concurrent writers of one key leave the last write.
    """

    def __init__(self, root: Path | str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.root = Path(root)

    def locate(
        self, host: str, pathname: str, method: str, fingerprint: str
    ) -> SnapshotKey:
        return snapshot_key(host, pathname, method, fingerprint)

    def paths(self, key: SnapshotKey) -> tuple[Path, Path]:
        """Return the ``(metadata, payload)`` file paths for a key."""
        return self.root / key.metadata_name, self.root / key.payload_name

    async def load(self, key: SnapshotKey) -> SnapshotRecord | None:
        """Load a snapshot, returning None for missing or unreadable entries."""
        metadata_path, _ = self.paths(key)
        if not await aiofiles.os.path.exists(metadata_path):
            self.debug(lambda: f"No snapshot found at {metadata_path}")
            return None

        try:
            record = await self._read(key)
        except SnapshotCorruptError as e:
            self.warning(f"Ignoring unreadable snapshot: {e!r}")
            return None

        self.debug(lambda: f"Fetched snapshot from {metadata_path}")
        return record

    async def _read(self, key: SnapshotKey) -> SnapshotRecord:
        metadata_path, payload_path = self.paths(key)
        try:
            async with aiofiles.open(metadata_path, mode="rb") as f:
                metadata = SnapshotMetadata.model_validate_json(await f.read())
            async with aiofiles.open(payload_path, mode="rb") as f:
                payload = await f.read()
        except (OSError, ValueError) as e:
            # ValidationError is a ValueError, as is an embedded NUL in the path
            raise SnapshotCorruptError(f"{key.path}: {e}") from e
        return SnapshotRecord(metadata=metadata, payload=payload)

    async def save(self, key: SnapshotKey, record: SnapshotRecord) -> None:
        """Write the metadata file, then the payload file.

        Raises:
            StoreWriteError: If a directory or file cannot be written, including
                keys that are not valid filesystem paths.
        """
        metadata_path, payload_path = self.paths(key)
        try:
            await aiofiles.os.makedirs(metadata_path.parent, exist_ok=True)
            async with aiofiles.open(metadata_path, mode="wb") as f:
                await f.write(
                    orjson.dumps(
                        record.metadata.model_dump(mode="json"),
                        option=orjson.OPT_INDENT_2,
                    )
                )
            async with aiofiles.open(payload_path, mode="wb") as f:
                await f.write(record.payload)
        except (OSError, ValueError) as e:
            raise StoreWriteError(
                f"Failed to save snapshot {key.path}: {e!r}", path=str(metadata_path)
            ) from e

        self.debug(lambda: f"Saved snapshot to {metadata_path}")


class InMemorySnapshotStore(ReplayLoggerMixin):
    """Dict backed store with the same contract as :class:`FileSnapshotStore`."""

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.snapshots: dict[str, SnapshotRecord] = {}

    def locate(
        self, host: str, pathname: str, method: str, fingerprint: str
    ) -> SnapshotKey:
        return snapshot_key(host, pathname, method, fingerprint)

    async def load(self, key: SnapshotKey) -> SnapshotRecord | None:
        return self.snapshots.get(key.path)

    async def save(self, key: SnapshotKey, record: SnapshotRecord) -> None:
        self.snapshots[key.path] = record

    def __len__(self) -> int:
        return len(self.snapshots)
