# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0
import logging
import os
from collections.abc import Callable
from inspect import currentframe

TRACE = logging.DEBUG - 5
logging.addLevelName(TRACE, "TRACE")

LogMessage = str | Callable[..., str]


class ReplayLogger:
    """Logger whose messages may be lambdas, formatted only when enabled.

    Every proxied call logs its resolution, lookup and fetch steps at TRACE
    or DEBUG, so those messages are passed lazily:

        logger = ReplayLogger(__name__)
        logger.debug(lambda: f"No snapshot for {request.href}, fetching from remote")
        logger.warning("Upstream %s returned %d", url, status)
    """

    def __init__(self, logger_name: str):
        self.logger_name = logger_name
        self._logger = logging.getLogger(logger_name)
        # Records point at the caller, not at this wrapper
        self._logger.findCaller = _find_caller

    def log(self, level: int, msg: LogMessage, *args, **kwargs) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if callable(msg):
            msg, args = msg(*args), ()
        self._logger._log(level, msg, args, **kwargs)

    def trace(self, msg: LogMessage, *args, **kwargs) -> None:
        self.log(TRACE, msg, *args, **kwargs)

    def debug(self, msg: LogMessage, *args, **kwargs) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: LogMessage, *args, **kwargs) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: LogMessage, *args, **kwargs) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: LogMessage, *args, **kwargs) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)


def _find_caller(stack_info=False, stacklevel=1) -> tuple[str, int, str, str | None]:
    """Return the first frame outside ``logging`` and the files in ``_ignored_files``."""
    frame = currentframe()
    while frame is not None:
        code = frame.f_code
        if os.path.normcase(code.co_filename) not in _ignored_files:
            return code.co_filename, frame.f_lineno, code.co_name, None
        frame = frame.f_back
    return "(unknown file)", 0, "(unknown function)", None


_ignored_files = [logging._srcfile, os.path.normcase(_find_caller.__code__.co_filename)]
