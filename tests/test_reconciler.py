"""Tests for the push reconciler."""

import pytest
from conftest import QUARANTINE_ID, ROOT_ID, InMemoryHierarchy

from gdrive_push.exceptions import (
    GDriveCreationError,
    GDriveListingError,
    GDriveUploadError,
    OperationLimitExceeded,
    ReconcileError,
)
from gdrive_push.governor import OperationGovernor
from gdrive_push.output import OutputFormatter
from gdrive_push.reconciler import Reconciler, find_match
from gdrive_push.remote import RemoteEntry
from gdrive_push.tree import build_tree


def run(remote, local_dir):
    """Reconcile ``local_dir`` into the fake remote root."""
    tree = build_tree(local_dir)
    reconciler = Reconciler(remote, QUARANTINE_ID, OutputFormatter())
    stats = reconciler.reconcile(tree, ROOT_ID)
    return tree, stats


def status_lines(capsys):
    return capsys.readouterr().out.splitlines()


class TestFindMatch:
    """Tests for find_match()."""

    def test_exact_name_match(self):
        items = [RemoteEntry("1", "a.txt"), RemoteEntry("2", "b.txt")]
        assert find_match("b.txt", items).id == "2"

    def test_no_match(self):
        items = [RemoteEntry("1", "A.txt")]
        assert find_match("a.txt", items) is None

    def test_first_duplicate_wins(self):
        items = [RemoteEntry("1", "dup"), RemoteEntry("2", "dup")]
        assert find_match("dup", items).id == "1"


class TestEndToEnd:
    """Whole-run scenarios against the in-memory remote."""

    def test_empty_remote_creates_everything(self, remote, local_dir, capsys):
        """Empty remote: folder and file are created, two operations."""
        tree, stats = run(remote, local_dir)

        assert status_lines(capsys) == ["+ /a/", "+ /a/x.txt (10 B)"]
        assert remote.governor.count == 2
        assert remote.operations() == ["create_folder", "create_file"]
        assert stats.created_folders == 1
        assert stats.uploaded == 1
        assert stats.bytes_uploaded == 10

    def test_existing_remote_replaces_file(self, remote, local_dir, capsys):
        """Existing folder is adopted, existing file is quarantined and re-uploaded."""
        folder_id = remote.add_folder("a")
        old_file_id = remote.add_file("x.txt", folder_id, size=10)

        tree, stats = run(remote, local_dir)

        assert status_lines(capsys) == ["  /a/", "M /a/x.txt (10 B)"]
        # relocation counts once per leg, plus the upload
        assert remote.governor.count == 3
        assert remote.operations() == ["add_parent", "remove_parent", "create_file"]
        assert remote.objects[old_file_id].parents == [QUARANTINE_ID]
        titles = [obj.title for obj in remote.children_of(folder_id)]
        assert titles == ["x.txt"]
        assert stats.unchanged_folders == 1
        assert stats.replaced == 1

    def test_second_run_reports_unchanged_and_modified(self, remote, tmp_path, capsys):
        root = tmp_path / "local"
        (root / "docs" / "img").mkdir(parents=True)
        (root / "docs" / "readme.md").write_text("hello")
        (root / "docs" / "img" / "logo.png").write_bytes(b"\x89PNG")
        (root / "top.txt").write_text("top")

        run(remote, root)
        first = status_lines(capsys)
        assert first == [
            "+ /docs/",
            "+ /docs/img/",
            "+ /docs/img/logo.png (4 B)",
            "+ /docs/readme.md (5 B)",
            "+ /top.txt (3 B)",
        ]

        folders_after_first = [o for o in remote.objects.values() if o.is_folder]
        calls_before = len(remote.calls)
        run(remote, root)
        second = status_lines(capsys)

        assert second == [
            "  /docs/",
            "  /docs/img/",
            "M /docs/img/logo.png (4 B)",
            "M /docs/readme.md (5 B)",
            "M /top.txt (3 B)",
        ]
        second_ops = [c[0] for c in remote.calls[calls_before:]]
        assert "create_folder" not in second_ops
        assert [o for o in remote.objects.values() if o.is_folder] == (
            folders_after_first
        )

    def test_ceiling_stops_second_folder(self, tmp_path):
        """With a ceiling of 1, the second folder creation aborts the run."""
        root = tmp_path / "local"
        (root / "a").mkdir(parents=True)
        (root / "b").mkdir()
        remote = InMemoryHierarchy(OperationGovernor(ceiling=1))

        with pytest.raises(OperationLimitExceeded) as exc_info:
            run(remote, root)

        assert exc_info.value.count == 2
        assert remote.operations() == ["create_folder"]
        assert [o.title for o in remote.children_of(ROOT_ID)] == ["a"]


class TestRemoteIds:
    """Tests for remote_id assignment."""

    def test_created_nodes_get_returned_ids(self, remote, local_dir):
        tree, _ = run(remote, local_dir)

        created = {
            call[1]: call[3] for call in remote.calls if call[0].startswith("create")
        }
        folder = tree.get(str(local_dir / "a"))
        file_node = tree.get(str(local_dir / "a" / "x.txt"))
        assert tree.root.remote_id == ROOT_ID
        assert folder.remote_id == created["a"]
        assert file_node.remote_id == created["x.txt"]

    def test_every_node_has_unique_remote_id(self, remote, tmp_path):
        root = tmp_path / "local"
        root.mkdir()
        for name in ("one.txt", "two.txt", "three.txt"):
            (root / name).write_text(name)

        tree, _ = run(remote, root)

        ids = [node.remote_id for node in tree.walk()]
        assert all(ids)
        assert len(set(ids)) == len(ids)

    def test_replaced_file_gets_new_id(self, remote, local_dir):
        folder_id = remote.add_folder("a")
        old_file_id = remote.add_file("x.txt", folder_id)

        tree, _ = run(remote, local_dir)

        file_node = tree.get(str(local_dir / "a" / "x.txt"))
        assert file_node.remote_id
        assert file_node.remote_id != old_file_id

    def test_matched_folder_adopts_remote_id(self, remote, local_dir):
        folder_id = remote.add_folder("a")

        tree, _ = run(remote, local_dir)

        assert tree.get(str(local_dir / "a")).remote_id == folder_id
        assert "create_folder" not in remote.operations()


class TestOrdering:
    """Tests for traversal and operation ordering."""

    def test_subtree_finished_before_next_sibling(self, remote, tmp_path, capsys):
        root = tmp_path / "local"
        (root / "a" / "deep").mkdir(parents=True)
        (root / "a" / "deep" / "f.txt").write_text("f")
        (root / "b.txt").write_text("bb")

        run(remote, root)

        assert status_lines(capsys) == [
            "+ /a/",
            "+ /a/deep/",
            "+ /a/deep/f.txt (1 B)",
            "+ /b.txt (2 B)",
        ]

    def test_relocation_precedes_upload(self, remote, local_dir):
        folder_id = remote.add_folder("a")
        old_file_id = remote.add_file("x.txt", folder_id)

        run(remote, local_dir)

        assert remote.calls[-3:-1] == [
            ("add_parent", old_file_id, QUARANTINE_ID),
            ("remove_parent", old_file_id, folder_id),
        ]
        assert remote.calls[-1][0] == "create_file"

    def test_each_folder_listed_once(self, remote, local_dir):
        tree, _ = run(remote, local_dir)

        listed = [c[1] for c in remote.calls if c[0] == "list_children"]
        assert listed == [ROOT_ID, tree.get(str(local_dir / "a")).remote_id]

    def test_type_mismatch_is_accepted(self, remote, local_dir, capsys):
        """A remote file named like a local folder is adopted as the folder."""
        file_id = remote.add_file("a")

        tree, _ = run(remote, local_dir)

        assert tree.get(str(local_dir / "a")).remote_id == file_id
        assert status_lines(capsys)[0] == "  /a/"


class TestErrors:
    """Tests for error propagation."""

    def test_listing_failure_is_wrapped(self, remote, local_dir):
        remote.fail_on["list_children"] = GDriveListingError("boom")

        with pytest.raises(ReconcileError) as exc_info:
            run(remote, local_dir)

        assert exc_info.value.operation == "list"
        assert exc_info.value.relative_path == "/"
        assert isinstance(exc_info.value.__cause__, GDriveListingError)

    def test_folder_creation_failure(self, remote, local_dir):
        remote.fail_on["create_folder"] = GDriveCreationError("nope")

        with pytest.raises(ReconcileError, match="create_folder failed for '/a'"):
            run(remote, local_dir)

    def test_upload_failure_names_path(self, remote, local_dir, capsys):
        remote.fail_on["create_file"] = GDriveUploadError("disk full")

        with pytest.raises(ReconcileError) as exc_info:
            run(remote, local_dir)

        assert exc_info.value.relative_path == "/a/x.txt"
        assert exc_info.value.operation == "upload"
        # The folder was created and stays created
        assert status_lines(capsys) == ["+ /a/"]
        assert remote.operations() == ["create_folder"]

    def test_relocation_failure_stops_before_upload(self, remote, local_dir):
        folder_id = remote.add_folder("a")
        remote.add_file("x.txt", folder_id)
        remote.fail_on["remove_parent"] = GDriveUploadError("flaky")

        with pytest.raises(ReconcileError, match="relocate"):
            run(remote, local_dir)

        assert "create_file" not in remote.operations()

    def test_limit_on_second_relocation_leg(self, local_dir):
        """The ceiling applies to each leg of a relocation separately."""
        remote = InMemoryHierarchy(OperationGovernor(ceiling=1))
        folder_id = remote.add_folder("a")
        old_id = remote.add_file("x.txt", folder_id)

        with pytest.raises(OperationLimitExceeded):
            run(remote, local_dir)

        assert remote.operations() == ["add_parent"]
        # Linked under both parents: the relocation was not completed
        assert remote.objects[old_id].parents == [folder_id, QUARANTINE_ID]

    def test_limit_exceeded_is_not_wrapped(self, local_dir):
        remote = InMemoryHierarchy(OperationGovernor(ceiling=1))

        with pytest.raises(OperationLimitExceeded):
            run(remote, local_dir)

    def test_missing_quarantine_rejected(self, remote):
        with pytest.raises(ValueError, match="quarantine"):
            Reconciler(remote, "")

    def test_missing_root_id_rejected(self, remote, local_dir):
        reconciler = Reconciler(remote, QUARANTINE_ID)
        with pytest.raises(ValueError, match="root folder"):
            reconciler.reconcile(build_tree(local_dir), "")
        assert remote.calls == []
