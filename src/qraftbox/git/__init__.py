"""Git interface layer — executor, diff parsing, diff generation, file trees."""

from qraftbox.git.binary import classify, check_large, is_binary_extension, is_image_extension
from qraftbox.git.diff import (
    WORKING_TREE,
    DiffError,
    DiffOptions,
    InvalidRevisionError,
    NotARepositoryError,
    PathNotFoundError,
    detect_default_base,
    get_changed_files,
    get_diff,
    get_file_content,
    get_file_diff,
)
from qraftbox.git.diff_parser import DiffParser, parse_chunk_header, parse_diff, parse_file_diff
from qraftbox.git.executor import GitExecError, execute, execute_stream, get_repo_root, is_repository
from qraftbox.git.files import TreeMode, build_tree, flatten_paths, get_file_tree, mark_binary, merge_status
from qraftbox.git.models import (
    ChangeType,
    DiffChange,
    DiffChunk,
    DiffFile,
    FileChangeStatus,
    FileNode,
    FileStatusEntry,
    NodeType,
    StagedFile,
)
from qraftbox.git.staged import get_staged_diff, get_staged_files, has_staged_changes

__all__ = [
    "WORKING_TREE",
    "ChangeType",
    "DiffChange",
    "DiffChunk",
    "DiffError",
    "DiffFile",
    "DiffOptions",
    "DiffParser",
    "FileChangeStatus",
    "FileNode",
    "FileStatusEntry",
    "GitExecError",
    "InvalidRevisionError",
    "NodeType",
    "NotARepositoryError",
    "PathNotFoundError",
    "StagedFile",
    "TreeMode",
    "build_tree",
    "check_large",
    "classify",
    "detect_default_base",
    "execute",
    "execute_stream",
    "flatten_paths",
    "get_changed_files",
    "get_diff",
    "get_file_content",
    "get_file_diff",
    "get_file_tree",
    "get_repo_root",
    "get_staged_diff",
    "get_staged_files",
    "has_staged_changes",
    "is_binary_extension",
    "is_image_extension",
    "is_repository",
    "mark_binary",
    "merge_status",
    "parse_chunk_header",
    "parse_diff",
    "parse_file_diff",
]
