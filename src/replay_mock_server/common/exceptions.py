# SPDX-FileCopyrightText: Copyright (c) 2025 NVIDIA CORPORATION & AFFILIATES. All rights reserved.
# SPDX-License-Identifier: Apache-2.0


class ReplayServerError(Exception):
    """Base class for all exceptions raised by the replay mock server."""

    def raw_str(self) -> str:
        """Return the raw string representation of the exception."""
        return super().__str__()

    def __str__(self) -> str:
        """Return the string representation of the exception with the class name."""
        return f"{self.__class__.__name__}: {super().__str__()}"


class ConfigurationError(ReplayServerError):
    """Exception raised when there is a configuration error."""


class UnresolvableTargetError(ReplayServerError):
    """Exception raised when an inbound call cannot be mapped to an absolute upstream URL."""


class SnapshotCorruptError(ReplayServerError):
    """Exception raised when a stored snapshot cannot be read or parsed."""


class StoreWriteError(ReplayServerError):
    """Exception raised when a snapshot cannot be persisted."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message)
        self.path = path


class UpstreamError(ReplayServerError):
    """Exception raised when the live upstream call fails."""

    def __init__(self, message: str, url: str, status: int | None = None) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status = status
