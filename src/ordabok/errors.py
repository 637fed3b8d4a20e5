"""Error types shared across ordabok.

Every failure the core reports carries a machine-readable ``ErrorCode`` and a
``recoverable`` flag. Query failures propagate to the immediate caller;
download and replace failures are recovered from by the freshness check and
only ever reach the log.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    QUERY_FAILED = "QUERY_FAILED"
    DOWNLOAD_FAILED = "DOWNLOAD_FAILED"
    REPLACE_FAILED = "REPLACE_FAILED"


class OrdabokError(Exception):
    """Base class for all errors raised by ordabok."""

    def __init__(self, code: ErrorCode, message: str, recoverable: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code.value!r}, message={self.message!r})"


class QueryError(OrdabokError):
    """The dataset rejected or failed to execute a query."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.QUERY_FAILED, message, recoverable=False)


class DownloadError(OrdabokError):
    """Transport failure or non-success status while downloading a dataset."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(ErrorCode.DOWNLOAD_FAILED, message, recoverable=True)
        self.status_code = status_code


class ReplaceError(OrdabokError):
    """A new dataset could not be committed. The previous dataset is untouched."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.REPLACE_FAILED, message, recoverable=True)
