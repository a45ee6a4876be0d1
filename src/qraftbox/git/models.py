"""Data models for diffs, change listings, and file trees."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class FileChangeStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    RENAMED = "renamed"
    COPIED = "copied"
    UNTRACKED = "untracked"


class ChangeType(str, Enum):
    ADD = "add"
    DELETE = "del"
    NORMAL = "normal"


class NodeType(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True, slots=True)
class DiffChange:
    """A single line inside a chunk."""

    type: ChangeType
    content: str
    old_line: Optional[int] = None  # unset for additions
    new_line: Optional[int] = None  # unset for deletions


@dataclass(frozen=True)
class ChunkRange:
    """Line ranges from an ``@@ -a,b +c,d @@`` header."""

    old_start: int
    old_lines: int
    new_start: int
    new_lines: int


@dataclass(frozen=True)
class DiffChunk:
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    header: str
    changes: Tuple[DiffChange, ...] = ()


@dataclass(frozen=True)
class DiffFile:
    """One changed path in a diff.

    Binary files never carry chunks and are not line-counted.
    """

    path: str
    status: FileChangeStatus = FileChangeStatus.MODIFIED
    old_path: Optional[str] = None  # set on renames and copies
    additions: int = 0
    deletions: int = 0
    chunks: Tuple[DiffChunk, ...] = ()
    is_binary: bool = False
    file_size: Optional[int] = None


@dataclass(frozen=True)
class FileStatusEntry:
    """Name-only change record from ``git status`` / ``git diff --name-status``."""

    path: str
    status: FileChangeStatus
    old_path: Optional[str] = None
    staged: bool = False


@dataclass(frozen=True)
class StagedFile:
    path: str
    status: FileChangeStatus
    additions: int = 0
    deletions: int = 0
    old_path: Optional[str] = None


@dataclass(frozen=True)
class FileNode:
    """Tree node. ``children`` is set for directories and ``None`` for files."""

    name: str
    path: str
    type: NodeType
    status: Optional[FileChangeStatus] = None
    is_binary: Optional[bool] = None
    children: Optional[Tuple["FileNode", ...]] = None

    @property
    def is_directory(self) -> bool:
        return self.type == NodeType.DIRECTORY


@dataclass(frozen=True)
class LargeFileInfo:
    is_large: bool
    size: int
    threshold: int


@dataclass(frozen=True)
class BinaryDetection:
    is_binary: bool
    is_image: bool
    extension: str
    mime_type: Optional[str] = None
