# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
"""Replay mock server configuration."""

import json
import logging
import os
from pathlib import Path
from typing import Annotated, Any, Literal

from cyclopts import Parameter
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self

ENV_PREFIX = "REPLAY_SERVER_"
DEFAULT_SNAPSHOT_DIR = Path("__mock-server-snapshots__")

logger = logging.getLogger(__name__)


class ReplayServerConfig(BaseSettings):
    """Server configuration with environment variable support."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    @model_validator(mode="after")
    def validate_verbose_flag(self) -> Self:
        if self.verbose:
            self.log_level = "DEBUG"
        return self

    @field_validator("websocket_path")
    @classmethod
    def validate_websocket_path(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("websocket_path must start with '/'")
        return value

    port: Annotated[
        int,
        Field(description="Port to run on", ge=1, le=65535),
        Parameter(name=("--port", "-p")),
    ] = 9001

    host: Annotated[
        str,
        Field(description="Host to bind to"),
        Parameter(name="--host"),
    ] = "127.0.0.1"

    snapshot_dir: Annotated[
        Path,
        Field(description="Directory snapshots are recorded to and replayed from"),
        Parameter(name=("--snapshot-dir", "-d")),
    ] = DEFAULT_SNAPSHOT_DIR

    upstream_timeout: Annotated[
        float | None,
        Field(description="Timeout for live upstream calls in seconds", gt=0.0),
        Parameter(name="--upstream-timeout"),
    ] = None

    verify_ssl: Annotated[
        bool,
        Field(description="Verify TLS certificates of upstream origins"),
        Parameter(name="--verify-ssl"),
    ] = False

    coalesce_inflight: Annotated[
        bool,
        Field(description="Share one upstream fetch between concurrent identical misses"),
        Parameter(name="--coalesce-inflight"),
    ] = False

    shutdown_grace_period: Annotated[
        int,
        Field(description="Seconds in-flight recordings get to finish on shutdown", ge=0, le=300),
        Parameter(name="--shutdown-grace-period"),
    ] = 5

    websocket_path: Annotated[
        str,
        Field(description="Path WebSocket RPC clients connect to"),
        Parameter(name="--websocket-path"),
    ] = "/socket.io/"

    log_level: Annotated[
        Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        Field(description="Logging level"),
        Parameter(name="--log-level"),
    ] = "INFO"

    verbose: Annotated[
        bool,
        Field(description="Log every proxied call (sets log level to DEBUG)"),
        Parameter(name=("--verbose", "-v")),
    ] = False

    access_logs: Annotated[
        bool,
        Field(description="Enable HTTP access logs"),
        Parameter(name="--access-logs"),
    ] = False


def propagate_config_to_env(config: ReplayServerConfig) -> None:
    """Propagate configuration to environment variables for the app factory."""
    for key, value in config.model_dump().items():
        if value is not None:
            env_key = _get_env_key(key)
            env_value = _serialize_env_value(value)
            logger.debug("Setting environment variable: %s = %s", env_key, env_value)
            os.environ[env_key] = env_value


def _get_env_key(config_key: str) -> str:
    """Convert config key to environment variable name."""
    return f"{ENV_PREFIX}{config_key.upper()}"


def _serialize_env_value(value: Any) -> str:
    """Serialize value for environment variable storage."""
    if isinstance(value, list | dict):
        return json.dumps(value)
    return str(value)
