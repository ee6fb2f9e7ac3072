# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from dataclasses import dataclass
from typing import Any

import aiohttp


@dataclass(frozen=True)
class AioHttpDefaults:
    """Default values for the upstream aiohttp connector."""

    LIMIT = 100  # Maximum number of concurrent upstream connections
    LIMIT_PER_HOST = 0  # 0 falls back to LIMIT
    TTL_DNS_CACHE = 300  # Time to live for DNS cache
    USE_DNS_CACHE = True
    ENABLE_CLEANUP_CLOSED = False
    FORCE_CLOSE = False
    KEEPALIVE_TIMEOUT = 15

    @classmethod
    def get_default_kwargs(cls) -> dict[str, Any]:
        """Get the default keyword arguments for aiohttp.TCPConnector."""
        return {
            "limit": cls.LIMIT,
            "limit_per_host": cls.LIMIT_PER_HOST,
            "ttl_dns_cache": cls.TTL_DNS_CACHE,
            "use_dns_cache": cls.USE_DNS_CACHE,
            "enable_cleanup_closed": cls.ENABLE_CLEANUP_CLOSED,
            "force_close": cls.FORCE_CLOSE,
            "keepalive_timeout": cls.KEEPALIVE_TIMEOUT,
        }


def create_tcp_connector(verify_ssl: bool = True, **kwargs) -> aiohttp.TCPConnector:
    """Create a new connector with the default configuration.

    ``verify_ssl=False`` skips certificate verification so that origins with
    self-signed certificates can be recorded.
    """
    default_kwargs: dict[str, Any] = AioHttpDefaults.get_default_kwargs()
    default_kwargs["ssl"] = verify_ssl
    default_kwargs.update(kwargs)
    return aiohttp.TCPConnector(**default_kwargs)
