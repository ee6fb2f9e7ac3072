# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from enum import Enum


class ReplayStrEnum(str, Enum):
    """String enum that formats as its value, as used in log and reply text."""

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}.{self.name}"


class Protocol(ReplayStrEnum):
    """Transport protocol an inbound call arrived on."""

    HTTP = "http"
    WEBSOCKET = "websocket"


class ReplayOutcome(ReplayStrEnum):
    """Terminal state of a single record-replay call."""

    REPLAYED = "replayed"
    """Served from an existing snapshot, upstream untouched."""

    RECORDED = "recorded"
    """Fetched live from upstream (and saved, unless persisting failed)."""

    FAILED = "failed"
    """No snapshot and the upstream call produced no result."""

    REJECTED = "rejected"
    """The inbound call could not be normalized into a canonical request."""
