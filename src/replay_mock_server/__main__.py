# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Replay Mock Server entry point."""

import sys

import cyclopts
import uvicorn

from replay_mock_server.common.logger import ReplayLogger
from replay_mock_server.common.logging import setup_logging
from replay_mock_server.config import ReplayServerConfig, propagate_config_to_env

logger = ReplayLogger(__name__)

app = cyclopts.App(name="replay-mock-server", help="Record-replay mock server")


@app.default
def serve(config: ReplayServerConfig | None = None) -> None:
    """Start the Replay Mock Server.

    Configuration priority (highest to lowest):
    1. CLI arguments
    2. Environment variables (REPLAY_SERVER_* prefix)
    3. Default values
    """
    if config is None:
        config = ReplayServerConfig()

    setup_logging(config.log_level)
    propagate_config_to_env(config)

    logger.info("Starting Replay Mock Server")
    logger.debug(lambda: f"Config: {config.model_dump()}")

    uvicorn.run(
        "replay_mock_server.app:create_app",
        factory=True,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
        access_log=config.access_logs or config.log_level == "DEBUG",
        timeout_graceful_shutdown=config.shutdown_grace_period,
    )


def main() -> None:
    sys.exit(app())


if __name__ == "__main__":
    main()
