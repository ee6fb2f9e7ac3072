# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
import os

from replay_mock_server.common import logger as replay_logger
from replay_mock_server.common.logger import LogMessage, ReplayLogger


class ReplayLoggerMixin:
    """Gives a class lazily evaluated log methods on a logger named after it.

    Usage:
        class FileSnapshotStore(ReplayLoggerMixin):
            def __init__(self, root: Path, **kwargs):
                super().__init__(**kwargs)
                self.debug(lambda: f"Using snapshot root {root}")
    """

    def __init__(self, logger_name: str | None = None, **kwargs) -> None:
        self.logger = ReplayLogger(logger_name or self.__class__.__name__)
        super().__init__(**kwargs)

    def trace(self, message: LogMessage, *args, **kwargs) -> None:
        self.logger.trace(message, *args, **kwargs)

    def debug(self, message: LogMessage, *args, **kwargs) -> None:
        self.logger.debug(message, *args, **kwargs)

    def info(self, message: LogMessage, *args, **kwargs) -> None:
        self.logger.info(message, *args, **kwargs)

    def warning(self, message: LogMessage, *args, **kwargs) -> None:
        self.logger.warning(message, *args, **kwargs)

    def error(self, message: LogMessage, *args, **kwargs) -> None:
        self.logger.error(message, *args, **kwargs)


replay_logger._ignored_files.append(
    os.path.normcase(ReplayLoggerMixin.info.__code__.co_filename)
)
