"""In-memory model of a local directory subtree.

The tree is built once, up front, by :func:`build_tree` and then walked
top-down by the reconciler. Nodes are owned by the :class:`LocalTree`
arena (indexed by absolute path) and by their parent's ``children``
list; the link back to the parent is just the parent's path.
"""

import logging
import os
import stat
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any, Optional

from .exceptions import LocalScanError
from .utils import format_mode, format_timestamp

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileInfo:
    """Filesystem metadata captured at scan time."""

    name: str
    size: int
    mode: int
    mod_time: float
    is_dir: bool

    @classmethod
    def from_stat(cls, name: str, st: os.stat_result) -> "FileInfo":
        return cls(
            name=name,
            size=st.st_size,
            mode=st.st_mode,
            mod_time=st.st_mtime,
            is_dir=stat.S_ISDIR(st.st_mode),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "size": self.size,
            "mode": format_mode(self.mode),
            "mod_time": format_timestamp(self.mod_time),
            "is_dir": self.is_dir,
        }


@dataclass(eq=False)
class LocalNode:
    """One filesystem entry of the scanned tree."""

    full_path: str
    """Absolute path, never changes"""

    info: FileInfo

    children: list["LocalNode"] = field(default_factory=list)
    """Child nodes in discovery order (always empty for files)"""

    parent_path: Optional[str] = None
    """Absolute path of the parent node, None for the root"""

    remote_id: str = ""
    """ID of the corresponding Drive object, set during reconciliation"""

    @property
    def name(self) -> str:
        return self.info.name

    @property
    def is_dir(self) -> bool:
        return self.info.is_dir

    @property
    def size(self) -> int:
        return self.info.size

    def relative_path(self, base: str) -> str:
        """Path relative to ``base`` using forward slashes ("" for ``base`` itself)."""
        rel = os.path.relpath(self.full_path, base)
        return "" if rel == os.curdir else PurePath(rel).as_posix()

    def to_dict(self) -> dict[str, Any]:
        """Convert the subtree rooted here to a JSON-serializable dict."""
        return {
            "path": self.full_path,
            "info": self.info.to_dict(),
            "children": [child.to_dict() for child in self.children],
        }

    def __repr__(self) -> str:
        kind = "dir" if self.is_dir else "file"
        return f"LocalNode({self.full_path!r}, {kind}, remote_id={self.remote_id!r})"


class LocalTree:
    """Arena of :class:`LocalNode` objects indexed by absolute path."""

    def __init__(self, root: LocalNode, nodes: dict[str, LocalNode]):
        self.root = root
        self._nodes = nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, path: object) -> bool:
        return path in self._nodes

    def get(self, path: str) -> Optional[LocalNode]:
        return self._nodes.get(path)

    def parent_of(self, node: LocalNode) -> Optional[LocalNode]:
        if node.parent_path is None:
            return None
        return self._nodes[node.parent_path]

    def walk(self) -> Iterator[LocalNode]:
        """Yield every node in depth-first pre-order."""
        stack = [self.root]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_dict(self) -> dict[str, Any]:
        return self.root.to_dict()


def _scan_error(path: str, error: OSError) -> LocalScanError:
    return LocalScanError(path, error.strerror or str(error))


def build_tree(root: str | os.PathLike[str]) -> LocalTree:
    """Scan ``root`` recursively and build a :class:`LocalTree`.

    Symlinks, special files and empty files are recorded like any other
    entry; symlinks are never followed. Sibling entries are visited in
    name order.

    Args:
        root: Directory to scan (absolute or relative)

    Returns:
        The fully linked tree

    Raises:
        LocalScanError: If any entry cannot be stat'ed or listed. No
            partial tree is returned.
    """
    abs_root = os.path.abspath(os.fspath(root))
    nodes: dict[str, LocalNode] = {}

    pending = [abs_root]
    while pending:
        path = pending.pop()
        try:
            st = os.lstat(path)
        except OSError as e:
            raise _scan_error(path, e) from e

        info = FileInfo.from_stat(os.path.basename(path) or path, st)
        nodes[path] = LocalNode(full_path=path, info=info)

        if info.is_dir:
            try:
                with os.scandir(path) as entries:
                    names = sorted(entry.name for entry in entries)
            except OSError as e:
                raise _scan_error(path, e) from e
            pending.extend(os.path.join(path, name) for name in reversed(names))

    # Nodes were recorded in pre-order, so every parent precedes its
    # children and children are appended in name order.
    tree_root = nodes.get(abs_root)
    if tree_root is None:
        raise LocalScanError(abs_root, "no root entry")
    for path, node in nodes.items():
        if path == abs_root:
            continue
        parent_path = os.path.dirname(path)
        node.parent_path = parent_path
        nodes[parent_path].children.append(node)

    logger.debug(f"Scanned {len(nodes)} entries under {abs_root}")
    return LocalTree(tree_root, nodes)
