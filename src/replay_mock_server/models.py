# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping
from typing import Any

import orjson
from pydantic import BaseModel as PydanticBaseModel
from pydantic import ConfigDict, Field

from replay_mock_server.common.enums import Protocol, ReplayOutcome

# Only these request headers take part in replay, keyed in this casing.
ALLOWED_HEADERS = ("Content-Type", "User-Agent", "Authorization")

SNAPSHOT_METADATA_SUFFIX = ".json"
SNAPSHOT_PAYLOAD_SUFFIX = ".data"

# ============================================================================
# Base Models
# ============================================================================


class BaseModel(PydanticBaseModel):
    """Base model with common configuration for all Pydantic models."""

    model_config = ConfigDict(frozen=True, extra="forbid")


# ============================================================================
# Inbound Calls
# ============================================================================


class InboundHttpCall(BaseModel):
    """An HTTP call as delivered by the server, before target resolution."""

    method: str
    path: str = Field(description="Percent-decoded request path, starting with '/'")
    query: str = Field(default="", description="Raw query string, without '?'")
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    def get_header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        return _get_header(self.headers, name)


def _get_header(headers: Mapping[str, Any], name: str) -> Any:
    lowered = name.lower()
    for key, value in headers.items():
        if key.lower() == lowered:
            return value
    return None


# ============================================================================
# Canonical Request
# ============================================================================


class CanonicalRequest(BaseModel):
    """Protocol-agnostic representation of an inbound call.

    Everything except ``protocol`` takes part in the fingerprint.
    """

    protocol: Protocol
    host: str = Field(description="Target host including the port, if any")
    pathname: str
    href: str
    method: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes = b""


# ============================================================================
# Snapshots
# ============================================================================


class SnapshotMetadata(BaseModel):
    """Response information stored beside the payload."""

    model_config = ConfigDict(frozen=True, extra="allow")

    status: int | None = None
    reason: str | None = None
    # Repeated response headers such as Set-Cookie keep every value as a list
    headers: dict[str, str | list[str]] = Field(default_factory=dict)
    url: str | None = None
    method: str | None = None

    @property
    def content_type(self) -> str | None:
        value = _get_header(self.headers, "Content-Type")
        if isinstance(value, list):
            return value[-1]
        return value


class SnapshotRecord(BaseModel):
    """A recorded response: metadata plus the raw payload bytes."""

    metadata: SnapshotMetadata
    payload: bytes


class SnapshotKey(BaseModel):
    """Store-relative address of a snapshot.

    ``path`` is ``{host}{pathname}.{method}.{fingerprint}`` with a trailing
    slash in ``pathname`` replaced by ``/index``.
    """

    path: str

    @property
    def metadata_name(self) -> str:
        return f"{self.path}{SNAPSHOT_METADATA_SUFFIX}"

    @property
    def payload_name(self) -> str:
        return f"{self.path}{SNAPSHOT_PAYLOAD_SUFFIX}"


# ============================================================================
# Replay Results
# ============================================================================


class ReplayResult(BaseModel):
    """Outcome of one record-replay call."""

    outcome: ReplayOutcome
    request: CanonicalRequest | None = None
    fingerprint: str | None = None
    record: SnapshotRecord | None = None
    persisted: bool = Field(
        default=False, description="Whether a freshly fetched record was saved"
    )

    @property
    def ok(self) -> bool:
        return self.record is not None

    def websocket_reply(self) -> Any:
        """Decode the payload of a WebSocket reply snapshot."""
        if self.record is None:
            return None
        return orjson.loads(self.record.payload)
