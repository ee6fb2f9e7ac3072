# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
from replay_mock_server.transports.http_adapter import HttpUpstreamAdapter
from replay_mock_server.transports.http_defaults import (
    AioHttpDefaults,
    create_tcp_connector,
)
from replay_mock_server.transports.websocket_adapter import WebSocketUpstreamAdapter

__all__ = [
    "AioHttpDefaults",
    "HttpUpstreamAdapter",
    "WebSocketUpstreamAdapter",
    "create_tcp_connector",
]
