"""The remote folder hierarchy as seen by the reconciler.

:class:`RemoteHierarchy` is the whole capability surface the reconciler
needs. :class:`DriveHierarchy` implements it on top of
:class:`~gdrive_push.api.DriveClient` and routes every mutating call
through an :class:`~gdrive_push.governor.OperationGovernor`.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .api import DriveClient
from .exceptions import (
    GDriveAPIError,
    GDriveCreationError,
    GDriveListingError,
    GDriveRelocationError,
    GDriveUploadError,
)
from .governor import OperationGovernor
from .tree import LocalNode
from .utils import FOLDER_MIME_TYPE, guess_mime_type

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteEntry:
    """One direct child of a remote folder."""

    id: str
    title: str
    mime_type: str = ""
    size: Optional[int] = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == FOLDER_MIME_TYPE

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> "RemoteEntry":
        """Build an entry from a Drive ``files`` resource."""
        size = data.get("size")
        return cls(
            id=str(data["id"]),
            title=data.get("name", ""),
            mime_type=data.get("mimeType", ""),
            size=int(size) if size is not None else None,
        )


class RemoteHierarchy(ABC):
    """Operations the reconciler performs on the remote store.

    Listing is read-only; the other three operations mutate remote state.
    """

    @abstractmethod
    def list_children(self, folder_id: str) -> list[RemoteEntry]:
        """Return every non-trashed direct child of a folder."""

    @abstractmethod
    def create_folder(self, title: str, parent_id: str) -> str:
        """Create a folder and return its ID."""

    @abstractmethod
    def create_file(
        self,
        local_file: LocalNode,
        parent_id: str,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        """Upload a local file as a new remote file and return its ID."""

    @abstractmethod
    def relocate_file(
        self, file_id: str, old_parent_id: str, new_parent_id: str
    ) -> None:
        """Move a file from one parent folder to another.

        Implemented as add-new-parent then remove-old-parent; a failure in
        between leaves the file under both parents.
        """


class DriveHierarchy(RemoteHierarchy):
    """:class:`RemoteHierarchy` backed by the Google Drive API."""

    def __init__(self, client: DriveClient, governor: OperationGovernor):
        self.client = client
        self.governor = governor

    def list_children(self, folder_id: str) -> list[RemoteEntry]:
        try:
            items = self.client.list_folder(folder_id)
        except GDriveAPIError as e:
            raise GDriveListingError(f"Unable to list files: {e}", e.status_code) from e
        return [RemoteEntry.from_api_response(item) for item in items]

    def create_folder(self, title: str, parent_id: str) -> str:
        self.governor.tally("create_folder")
        try:
            return self.client.create_folder(title, parent_id)
        except GDriveAPIError as e:
            raise GDriveCreationError(
                f"Problem creating folder {title!r}: {e}", e.status_code
            ) from e

    def create_file(
        self,
        local_file: LocalNode,
        parent_id: str,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        self.governor.tally("create_file")
        try:
            return self.client.upload_file(
                file_path=Path(local_file.full_path),
                name=local_file.name,
                parent_id=parent_id,
                mime_type=guess_mime_type(local_file.name),
                cancel=cancel,
            )
        except GDriveUploadError:
            raise
        except GDriveAPIError as e:
            raise GDriveUploadError(
                f"An error occurred uploading the file: {e}", e.status_code
            ) from e

    def relocate_file(
        self, file_id: str, old_parent_id: str, new_parent_id: str
    ) -> None:
        self.governor.tally("relocate_file:add_parent")
        try:
            self.client.add_parent(file_id, new_parent_id)
        except GDriveAPIError as e:
            raise GDriveRelocationError(
                f"Adding parent {new_parent_id} failed: {e}", e.status_code
            ) from e

        self.governor.tally("relocate_file:remove_parent")
        try:
            self.client.remove_parent(file_id, old_parent_id)
        except GDriveAPIError as e:
            raise GDriveRelocationError(
                f"Removing parent {old_parent_id} failed: {e}", e.status_code
            ) from e
