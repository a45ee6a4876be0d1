"""File tree — build from flat paths, annotate with status and binary flags.

Every function here returns a fresh tree; nodes are never patched in place.
Only ``list_files`` and ``get_file_tree`` talk to git.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from qraftbox.git.binary import is_binary_extension
from qraftbox.git.diff import (
    DiffOptions,
    get_changed_files,
    run_git,
    split_nul,
    status_map,
)
from qraftbox.git.executor import DEFAULT_TIMEOUT_MS, PathLike
from qraftbox.git.models import FileChangeStatus, FileNode, NodeType

logger = logging.getLogger(__name__)


class TreeMode(str, Enum):
    ALL = "all"
    CHANGED = "changed"


class _DirBuilder:
    """Mutable scratch node used only while building."""

    __slots__ = ("dirs", "files")

    def __init__(self) -> None:
        self.dirs: Dict[str, "_DirBuilder"] = {}
        self.files: Dict[str, str] = {}  # name -> full path

    def freeze(self, name: str, path: str) -> FileNode:
        children: List[FileNode] = [
            child.freeze(child_name, f"{path}/{child_name}" if path else child_name)
            for child_name, child in sorted(self.dirs.items())
        ]
        children.extend(
            FileNode(name=file_name, path=file_path, type=NodeType.FILE)
            for file_name, file_path in sorted(self.files.items())
        )
        return FileNode(
            name=name,
            path=path,
            type=NodeType.DIRECTORY,
            children=tuple(children),
        )


def build_tree(paths: Iterable[str]) -> FileNode:
    """Build a tree rooted at a nameless directory from '/'-separated paths.

    Children are ordered directories first, then by name (case-sensitive).
    """
    root = _DirBuilder()
    for path in paths:
        segments = [s for s in path.split("/") if s]
        if not segments:
            continue
        node = root
        for segment in segments[:-1]:
            node = node.dirs.setdefault(segment, _DirBuilder())
        node.files[segments[-1]] = "/".join(segments)
    return root.freeze("", "")


def flatten_paths(tree: FileNode) -> List[str]:
    """Return the paths of every file leaf, depth first."""
    if not tree.is_directory:
        return [tree.path]
    out: List[str] = []
    for child in tree.children or ():
        out.extend(flatten_paths(child))
    return out


def iter_nodes(tree: FileNode) -> Iterator[FileNode]:
    yield tree
    for child in tree.children or ():
        yield from iter_nodes(child)


def merge_status(tree: FileNode, statuses: Mapping[str, FileChangeStatus]) -> FileNode:
    """Return a copy of *tree* with change status attached.

    Matching leaves take their status from *statuses*; every directory that
    contains a changed leaf is marked MODIFIED unless it has its own entry.
    Merging the same map twice gives the same tree as merging it once.
    """

    def merge(node: FileNode) -> FileNode:
        own = statuses.get(node.path) if node.path else None
        if not node.is_directory:
            if own is None or own == node.status:
                return node
            return FileNode(
                name=node.name,
                path=node.path,
                type=node.type,
                status=own,
                is_binary=node.is_binary,
            )

        children = tuple(merge(child) for child in node.children or ())
        if own is None and any(child.status is not None for child in children):
            own = FileChangeStatus.MODIFIED
        return FileNode(
            name=node.name,
            path=node.path,
            type=node.type,
            status=own if own is not None else node.status,
            is_binary=node.is_binary,
            children=children,
        )

    return merge(tree)


def mark_binary(tree: FileNode) -> FileNode:
    """Return a copy of *tree* with ``is_binary`` set on binary-extension leaves.

    Only the path is inspected; file content is never read.
    """
    if not tree.is_directory:
        if is_binary_extension(tree.path):
            return FileNode(
                name=tree.name,
                path=tree.path,
                type=tree.type,
                status=tree.status,
                is_binary=True,
            )
        return tree
    return FileNode(
        name=tree.name,
        path=tree.path,
        type=tree.type,
        status=tree.status,
        is_binary=tree.is_binary,
        children=tuple(mark_binary(child) for child in tree.children or ()),
    )


def list_files(repo_root: PathLike, *, timeout_ms: int = DEFAULT_TIMEOUT_MS) -> List[str]:
    """All tracked paths (``git ls-files``)."""
    result = run_git(["ls-files", "-z"], repo_root, timeout_ms)
    return split_nul(result.stdout)


def get_file_tree(
    repo_root: PathLike,
    mode: TreeMode = TreeMode.ALL,
    options: Optional[DiffOptions] = None,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> FileNode:
    """Tree of tracked files (or only changed files) with status and binary flags."""
    entries = get_changed_files(repo_root, options, timeout_ms=timeout_ms)
    statuses = status_map(entries)

    if mode == TreeMode.CHANGED:
        paths: Iterable[str] = statuses.keys()
    else:
        tracked = list_files(repo_root, timeout_ms=timeout_ms)
        untracked = [p for p, s in statuses.items() if s == FileChangeStatus.UNTRACKED]
        paths = dict.fromkeys([*tracked, *untracked]).keys()

    tree = mark_binary(build_tree(paths))
    logger.debug("file tree (%s): %d changed paths", mode.value, len(statuses))
    return merge_status(tree, statuses)
