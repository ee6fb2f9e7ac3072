# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Record-replay mock server for HTTP and WebSocket RPC traffic."""

__version__ = "1.0.0"
