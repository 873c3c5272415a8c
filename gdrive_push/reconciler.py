"""Push reconciliation of a local tree into a remote folder.

The reconciler walks the local tree depth-first. For every directory it
lists the matching remote folder once, pairs each local child with the
first remote child of the same name and then:

* creates missing folders, adopts existing ones;
* uploads missing files;
* for files that already exist remotely, moves the old remote file into
  the quarantine folder and uploads the local file fresh.

Subdirectories are recursed into right after their own status line, so
one subtree is finished before the next sibling is looked at. The first
error aborts the run; nothing already done is rolled back.
"""

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Optional

from .exceptions import GDrivePushError, ReconcileError
from .output import OutputFormatter
from .remote import RemoteEntry, RemoteHierarchy
from .tree import LocalNode, LocalTree
from .utils import format_size

logger = logging.getLogger(__name__)

MARKER_CREATED = "+"
MARKER_MODIFIED = "M"
MARKER_UNCHANGED = " "


@dataclass
class ReconcileStats:
    """Counters for one reconciliation run."""

    created_folders: int = 0
    unchanged_folders: int = 0
    uploaded: int = 0
    replaced: int = 0
    bytes_uploaded: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def find_match(name: str, remote_items: list[RemoteEntry]) -> Optional[RemoteEntry]:
    """Return the first remote entry titled exactly ``name``."""
    for item in remote_items:
        if item.title == name:
            return item
    return None


class Reconciler:
    """Pushes a :class:`LocalTree` into a remote folder."""

    def __init__(
        self,
        remote: RemoteHierarchy,
        quarantine_id: str,
        output: Optional[OutputFormatter] = None,
        cancel: Optional[threading.Event] = None,
    ):
        """Initialize the reconciler.

        Args:
            remote: Remote hierarchy to push into
            quarantine_id: Folder that superseded remote files are moved to
            output: Output formatter for status lines
            cancel: Cancellation signal handed to every upload. Library
                callers set it from another thread to stop a retrying upload
        """
        if not quarantine_id:
            raise ValueError("A quarantine folder ID is required")
        self.remote = remote
        self.quarantine_id = quarantine_id
        self.output = output or OutputFormatter()
        self.cancel = cancel or threading.Event()
        self.stats = ReconcileStats()
        self._base = ""

    def reconcile(self, tree: LocalTree, root_id: str) -> ReconcileStats:
        """Sync ``tree`` into the remote folder ``root_id``.

        Args:
            tree: Local tree to push
            root_id: ID of the remote folder that mirrors ``tree.root``

        Returns:
            Counters describing what was done

        Raises:
            ReconcileError: If any remote operation fails
            OperationLimitExceeded: If the operation ceiling is exceeded
        """
        if not root_id:
            raise ValueError("A remote root folder ID is required")
        self.stats = ReconcileStats()
        self._base = tree.root.full_path
        tree.root.remote_id = root_id
        self._process_node(tree.root)
        return self.stats

    def _relative(self, node: LocalNode) -> str:
        return node.relative_path(self._base)

    def _process_node(self, node: LocalNode) -> None:
        logger.debug(f"process_node({node!r})")
        try:
            remote_items = self.remote.list_children(node.remote_id)
        except GDrivePushError as e:
            raise ReconcileError(f"/{self._relative(node)}", "list", e) from e

        # TODO: detect a local file matching a remote folder (and vice versa)
        for child in node.children:
            match = find_match(child.name, remote_items)
            if child.is_dir:
                self._reconcile_folder(node, child, match)
                self._process_node(child)
            else:
                self._reconcile_file(node, child, match)

    def _reconcile_folder(
        self, parent: LocalNode, child: LocalNode, match: Optional[RemoteEntry]
    ) -> None:
        rel_name = self._relative(child)
        if match is not None:
            child.remote_id = match.id
            marker = MARKER_UNCHANGED
            self.stats.unchanged_folders += 1
        else:
            try:
                child.remote_id = self.remote.create_folder(
                    child.name, parent.remote_id
                )
            except GDrivePushError as e:
                raise ReconcileError(f"/{rel_name}", "create_folder", e) from e
            marker = MARKER_CREATED
            self.stats.created_folders += 1
        self.output.status(marker, f"/{rel_name}/")

    def _reconcile_file(
        self, parent: LocalNode, child: LocalNode, match: Optional[RemoteEntry]
    ) -> None:
        rel_name = self._relative(child)
        marker = MARKER_CREATED
        if match is not None:
            marker = MARKER_MODIFIED
            try:
                self.remote.relocate_file(
                    match.id, parent.remote_id, self.quarantine_id
                )
            except GDrivePushError as e:
                raise ReconcileError(f"/{rel_name}", "relocate", e) from e

        try:
            child.remote_id = self.remote.create_file(
                child, parent.remote_id, cancel=self.cancel
            )
        except GDrivePushError as e:
            raise ReconcileError(f"/{rel_name}", "upload", e) from e

        if match is not None:
            self.stats.replaced += 1
        else:
            self.stats.uploaded += 1
        self.stats.bytes_uploaded += child.size
        self.output.status(marker, f"/{rel_name} ({format_size(child.size)})")
