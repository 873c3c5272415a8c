"""Exceptions raised by gdrive-push."""

from __future__ import annotations

from typing import Optional


class GDrivePushError(Exception):
    """Base exception for all recoverable gdrive-push errors."""


class GDriveConfigError(GDrivePushError):
    """A required configuration value is missing or invalid."""


class LocalScanError(GDrivePushError):
    """Scanning the local directory failed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Cannot scan {path!r}: {message}")


class GDriveAPIError(GDrivePushError):
    """Base exception for Google Drive API failures."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class GDriveAuthenticationError(GDriveAPIError):
    """Access token missing, expired or rejected."""


class GDrivePermissionError(GDriveAPIError):
    """The token does not grant access to the resource."""


class GDriveNotFoundError(GDriveAPIError):
    """File or folder not found."""


class GDriveRateLimitError(GDriveAPIError):
    """Rate limit exceeded."""


class GDriveNetworkError(GDriveAPIError):
    """Transport-level failure (connection reset, timeout, DNS...)."""


class GDriveInvalidResponseError(GDriveAPIError):
    """The server returned something we could not interpret."""


class GDriveListingError(GDriveAPIError):
    """Listing a folder failed."""


class GDriveCreationError(GDriveAPIError):
    """Creating a folder failed."""


class GDriveUploadError(GDriveAPIError):
    """Uploading a file failed."""


class UploadCancelledError(GDriveUploadError):
    """The cancellation signal fired while an upload was being retried."""


class GDriveRelocationError(GDriveAPIError):
    """Moving a file between parent folders failed."""


class ReconcileError(GDrivePushError):
    """A step of the reconciliation failed for a specific entry."""

    def __init__(self, relative_path: str, operation: str, cause: Exception):
        self.relative_path = relative_path
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed for {relative_path!r}: {cause}")


class SyncAbort(Exception):
    """Unrecoverable abort of the whole run.

    Deliberately not a GDrivePushError: nothing inside the sync machinery
    catches or wraps it, so it always reaches the top-level caller.
    """


class OperationLimitExceeded(SyncAbort):
    """More mutating remote operations were issued than the ceiling allows."""

    def __init__(self, count: int, ceiling: int):
        self.count = count
        self.ceiling = ceiling
        super().__init__(
            f"Operation ceiling reached: operation #{count} exceeds "
            f"--max-gdrive-ops={ceiling}, exiting"
        )
