"""gdrive-push - push a local directory tree into a Google Drive folder."""

__version__ = "0.1.0"

from .api import DriveClient  # noqa: E402
from .exceptions import (  # noqa: E402
    GDriveAPIError,
    GDriveAuthenticationError,
    GDriveConfigError,
    GDriveCreationError,
    GDriveListingError,
    GDriveNetworkError,
    GDriveNotFoundError,
    GDrivePermissionError,
    GDrivePushError,
    GDriveRateLimitError,
    GDriveRelocationError,
    GDriveUploadError,
    LocalScanError,
    OperationLimitExceeded,
    ReconcileError,
    SyncAbort,
    UploadCancelledError,
)
from .governor import OperationGovernor  # noqa: E402
from .reconciler import Reconciler, ReconcileStats  # noqa: E402
from .remote import DriveHierarchy, RemoteEntry, RemoteHierarchy  # noqa: E402
from .tree import FileInfo, LocalNode, LocalTree, build_tree  # noqa: E402

__all__ = [
    "DriveClient",
    "DriveHierarchy",
    "FileInfo",
    "GDriveAPIError",
    "GDriveAuthenticationError",
    "GDriveConfigError",
    "GDriveCreationError",
    "GDriveListingError",
    "GDriveNetworkError",
    "GDriveNotFoundError",
    "GDrivePermissionError",
    "GDrivePushError",
    "GDriveRateLimitError",
    "GDriveRelocationError",
    "GDriveUploadError",
    "LocalNode",
    "LocalScanError",
    "LocalTree",
    "OperationGovernor",
    "OperationLimitExceeded",
    "ReconcileError",
    "ReconcileStats",
    "Reconciler",
    "RemoteEntry",
    "RemoteHierarchy",
    "SyncAbort",
    "UploadCancelledError",
    "build_tree",
]
