# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Deterministic request fingerprints."""

import base64
import hashlib

import orjson

from replay_mock_server.models import CanonicalRequest


def canonical_bytes(request: CanonicalRequest) -> bytes:
    """Serialize the fingerprinted fields of a request in a fixed order.

    Keys are sorted at every level, so header insertion order never changes
    the result. The body is base64 encoded to keep arbitrary bytes intact.
    """
    return orjson.dumps(
        {
            "host": request.host,
            "pathname": request.pathname,
            "href": request.href,
            "method": request.method,
            "headers": request.headers,
            "body": base64.b64encode(request.body).decode("ascii"),
        },
        option=orjson.OPT_SORT_KEYS,
    )


def fingerprint(request: CanonicalRequest) -> str:
    """Return the SHA-256 hex digest of the request's canonical serialization."""
    return hashlib.sha256(canonical_bytes(request)).hexdigest()
