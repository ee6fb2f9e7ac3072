# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
import logging

from rich.console import Console
from rich.logging import RichHandler

from replay_mock_server.common.logger import ReplayLogger

logger = ReplayLogger(__name__)


def setup_logging(level: str | int = "INFO") -> None:
    """Install a rich console handler on the root logger."""
    if isinstance(level, str):
        level = level.upper()
    logging.root.setLevel(level)

    # Remove all existing handlers to avoid duplicate logs
    for existing_handler in logging.root.handlers[:]:
        logging.root.removeHandler(existing_handler)

    rich_handler = RichHandler(
        rich_tracebacks=True,
        show_path=True,
        console=Console(stderr=True),
        show_time=True,
        show_level=True,
        tracebacks_show_locals=False,
        log_time_format="%H:%M:%S.%f",
        omit_repeated_times=False,
    )
    rich_handler.setLevel(level)
    logging.root.addHandler(rich_handler)

    logger.debug(lambda: f"Logging initialized with level: {level}")
