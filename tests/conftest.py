"""Pytest configuration and shared fixtures."""

import itertools
import threading
from dataclasses import dataclass, field
from typing import Optional

import pytest

from gdrive_push.governor import OperationGovernor
from gdrive_push.remote import RemoteEntry, RemoteHierarchy
from gdrive_push.tree import LocalNode
from gdrive_push.utils import FOLDER_MIME_TYPE, guess_mime_type

ROOT_ID = "root"
QUARANTINE_ID = "old-files"


@dataclass
class FakeObject:
    id: str
    title: str
    is_folder: bool
    parents: list[str] = field(default_factory=list)
    size: int = 0


class InMemoryHierarchy(RemoteHierarchy):
    """RemoteHierarchy fake that keeps the remote tree in a dict.

    Mutating calls go through the governor exactly like DriveHierarchy
    and are recorded in ``calls`` in the order they were made.
    """

    def __init__(self, governor: Optional[OperationGovernor] = None):
        self.governor = governor or OperationGovernor(ceiling=1000)
        self.objects: dict[str, FakeObject] = {}
        self.calls: list[tuple] = []
        self.fail_on: dict[str, Exception] = {}
        self._ids = itertools.count(1)
        self.objects[ROOT_ID] = FakeObject(ROOT_ID, "root", True)
        self.objects[QUARANTINE_ID] = FakeObject(QUARANTINE_ID, "old", True)

    def _new_id(self) -> str:
        return f"id-{next(self._ids)}"

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise self.fail_on[operation]

    # Seeding helpers (not counted as operations)

    def add_folder(self, title: str, parent_id: str = ROOT_ID) -> str:
        obj = FakeObject(self._new_id(), title, True, [parent_id])
        self.objects[obj.id] = obj
        return obj.id

    def add_file(self, title: str, parent_id: str = ROOT_ID, size: int = 0) -> str:
        obj = FakeObject(self._new_id(), title, False, [parent_id], size)
        self.objects[obj.id] = obj
        return obj.id

    def children_of(self, folder_id: str) -> list[FakeObject]:
        return [obj for obj in self.objects.values() if folder_id in obj.parents]

    def operations(self) -> list[str]:
        return [call[0] for call in self.calls if call[0] != "list_children"]

    # RemoteHierarchy

    def list_children(self, folder_id: str) -> list[RemoteEntry]:
        self.calls.append(("list_children", folder_id))
        self._maybe_fail("list_children")
        return [
            RemoteEntry(
                id=obj.id,
                title=obj.title,
                mime_type=(
                    FOLDER_MIME_TYPE if obj.is_folder else guess_mime_type(obj.title)
                ),
                size=None if obj.is_folder else obj.size,
            )
            for obj in self.children_of(folder_id)
        ]

    def create_folder(self, title: str, parent_id: str) -> str:
        self.governor.tally("create_folder")
        self._maybe_fail("create_folder")
        folder_id = self.add_folder(title, parent_id)
        self.calls.append(("create_folder", title, parent_id, folder_id))
        return folder_id

    def create_file(
        self,
        local_file: LocalNode,
        parent_id: str,
        cancel: Optional[threading.Event] = None,
    ) -> str:
        self.governor.tally("create_file")
        self._maybe_fail("create_file")
        file_id = self.add_file(local_file.name, parent_id, local_file.size)
        self.calls.append(("create_file", local_file.name, parent_id, file_id))
        return file_id

    def relocate_file(
        self, file_id: str, old_parent_id: str, new_parent_id: str
    ) -> None:
        obj = self.objects[file_id]
        self.governor.tally("relocate_file:add_parent")
        self._maybe_fail("add_parent")
        obj.parents.append(new_parent_id)
        self.calls.append(("add_parent", file_id, new_parent_id))

        self.governor.tally("relocate_file:remove_parent")
        self._maybe_fail("remove_parent")
        obj.parents.remove(old_parent_id)
        self.calls.append(("remove_parent", file_id, old_parent_id))


@pytest.fixture
def governor():
    return OperationGovernor(ceiling=20)


@pytest.fixture
def remote(governor):
    return InMemoryHierarchy(governor)


@pytest.fixture
def local_dir(tmp_path):
    """Local tree ``a/`` and ``a/x.txt`` (10 bytes)."""
    root = tmp_path / "local"
    (root / "a").mkdir(parents=True)
    (root / "a" / "x.txt").write_bytes(b"0123456789")
    return root
