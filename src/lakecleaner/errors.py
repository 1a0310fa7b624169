"""Exception hierarchy for lakecleaner."""

from __future__ import annotations


class CleanerError(Exception):
    """Base exception for all lakecleaner errors."""


class InitError(CleanerError):
    """Session, bootstrap or configuration setup failed."""


class ValidationError(CleanerError):
    """A configuration or input value has the wrong shape."""


class LakeFsError(CleanerError):
    """Error talking to the lakeFS API.

    Raised when:
    - lakeFS is unreachable or the request times out
    - credentials are rejected
    - the API returns an error response
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteListError(LakeFsError):
    """Listing objects on a branch failed."""


class RemoteNotFound(LakeFsError):
    """The requested object does not exist on the branch."""


class EngineError(CleanerError):
    """A DuckDB statement failed."""


class UnknownError(CleanerError):
    """Catch-all for failures without a more specific kind."""


class NoFilesAvailable(UnknownError):
    """The source branch holds no files to seed the working table from."""
