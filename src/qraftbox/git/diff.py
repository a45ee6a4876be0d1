"""Diff generation — comparisons, untracked files, file content, change lists.

Raw text always goes through ``diff_parser``; this module never interprets
diff bodies itself, and rename detection is left to git and the parser.
"""

from __future__ import annotations

import dataclasses
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple, Union

from qraftbox.git.binary import LARGE_FILE_THRESHOLD, BINARY_SAMPLE_SIZE, classify
from qraftbox.git.diff_parser import parse_diff
from qraftbox.git.executor import (
    DEFAULT_TIMEOUT_MS,
    GitCommandFailed,
    GitExecError,
    GitResult,
    PathLike,
    execute,
    execute_stream,
)
from qraftbox.git.models import (
    ChangeType,
    DiffChange,
    DiffChunk,
    DiffFile,
    FileChangeStatus,
    FileStatusEntry,
)

logger = logging.getLogger(__name__)


class Revision(Enum):
    WORKING_TREE = "working-tree"


WORKING_TREE = Revision.WORKING_TREE
RevisionSpec = Union[str, Revision]

DEFAULT_BASE = "HEAD"
DEFAULT_CONTEXT_LINES = 3

# Pin header shapes regardless of user config.
GIT_CONFIG_ARGS = [
    "-c", "core.quotepath=false",
    "-c", "diff.noprefix=false",
    "-c", "diff.mnemonicPrefix=false",
]
DIFF_FLAGS = ["--no-color", "--no-ext-diff", "-M"]


# --- errors ---------------------------------------------------------------


class DiffError(Exception):
    """Raised when a diff, listing, or content request cannot be served."""

    http_status = 500

    def __init__(self, message: str, exec_error: Optional[GitExecError] = None) -> None:
        super().__init__(message)
        self.exec_error = exec_error


class NotARepositoryError(DiffError):
    http_status = 400


class InvalidRevisionError(DiffError):
    http_status = 400


class PathNotFoundError(DiffError):
    http_status = 404


_NOT_A_REPO_MARKERS = ("not a git repository",)
_BAD_REVISION_MARKERS = (
    "unknown revision",
    "bad revision",
    "invalid object name",
    "ambiguous argument",
    "not a valid object name",
    "bad object",
)
_MISSING_PATH_MARKERS = ("does not exist in", "exists on disk, but not in")


def translate_error(exc: GitExecError) -> DiffError:
    """Classify a failed git call by its stderr."""
    stderr = exc.stderr.lower()
    message = exc.stderr.strip() or str(exc)
    if any(m in stderr for m in _NOT_A_REPO_MARKERS):
        return NotARepositoryError(message, exc)
    if any(m in stderr for m in _MISSING_PATH_MARKERS):
        return PathNotFoundError(message, exc)
    if any(m in stderr for m in _BAD_REVISION_MARKERS):
        return InvalidRevisionError(message, exc)
    return DiffError(f"git command failed: {message}", exc)


def run_git(args: Sequence[str], repo_root: PathLike, timeout_ms: int) -> GitResult:
    """Run git, converting executor failures into DiffError subclasses."""
    try:
        return execute(list(args), repo_root, timeout_ms)
    except GitExecError as exc:
        raise translate_error(exc) from exc


# --- options --------------------------------------------------------------


@dataclass(frozen=True)
class DiffOptions:
    """What to compare.

    ``base``/``target`` are revisions or WORKING_TREE. ``full_content``
    lifts the large-file cut-off for untracked files.
    """

    base: RevisionSpec = DEFAULT_BASE
    target: RevisionSpec = WORKING_TREE
    paths: Tuple[str, ...] = ()
    context_lines: int = DEFAULT_CONTEXT_LINES
    include_untracked: bool = True
    full_content: bool = False


def _pathspec(paths: Sequence[str]) -> List[str]:
    return ["--", *paths] if paths else []


def _comparison_args(options: DiffOptions) -> Optional[List[str]]:
    """Revision arguments for ``git diff``; None when there is nothing to compare."""
    base_wt = options.base == WORKING_TREE
    target_wt = options.target == WORKING_TREE
    if base_wt and target_wt:
        return None
    if target_wt:
        return [str(options.base)]
    if base_wt:
        return ["-R", str(options.target)]
    return [f"{options.base}..{options.target}"]


# --- diff -----------------------------------------------------------------


def get_diff(
    repo_root: PathLike,
    options: Optional[DiffOptions] = None,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> List[DiffFile]:
    """Return parsed DiffFile records for the comparison in *options*.

    Working-tree comparisons also include untracked files as additions.
    """
    options = options or DiffOptions()
    rev_args = _comparison_args(options)
    if rev_args is None:
        return []

    args = [
        *GIT_CONFIG_ARGS,
        "diff",
        *DIFF_FLAGS,
        f"-U{options.context_lines}",
        *rev_args,
        *_pathspec(options.paths),
    ]
    try:
        result = run_git(args, repo_root, timeout_ms)
    except InvalidRevisionError:
        if options.base != DEFAULT_BASE or options.target != WORKING_TREE:
            raise
        if _has_head(repo_root, timeout_ms):
            raise
        # No commits yet: the index is the only thing to compare against.
        logger.debug("repository has no HEAD, diffing the index instead")
        args = [
            *GIT_CONFIG_ARGS,
            "diff",
            *DIFF_FLAGS,
            f"-U{options.context_lines}",
            "--cached",
            *_pathspec(options.paths),
        ]
        result = run_git(args, repo_root, timeout_ms)

    files = parse_diff(result.stdout)

    if options.target == WORKING_TREE:
        files = [_with_size(repo_root, f) if f.is_binary else f for f in files]
        if options.include_untracked:
            files.extend(_untracked_diff_files(repo_root, options, timeout_ms))

    logger.debug("diff %s: %d files", " ".join(rev_args), len(files))
    return files


def get_file_diff(
    repo_root: PathLike,
    path: str,
    options: Optional[DiffOptions] = None,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> Optional[DiffFile]:
    """Diff a single path; None when it has no changes.

    Only a record for *path* itself (or a rename away from it) is returned,
    so a directory or wider pathspec yields None.
    """
    options = dataclasses.replace(options or DiffOptions(), paths=(path,))
    for f in get_diff(repo_root, options, timeout_ms=timeout_ms):
        if f.path == path or f.old_path == path:
            return f
    return None


def _has_head(repo_root: PathLike, timeout_ms: int) -> bool:
    try:
        execute(["rev-parse", "--verify", "--quiet", "HEAD"], repo_root, timeout_ms)
    except GitCommandFailed:
        return False
    return True


def _with_size(repo_root: PathLike, diff_file: DiffFile) -> DiffFile:
    try:
        size = (Path(repo_root) / diff_file.path).stat().st_size
    except OSError:
        return diff_file
    return dataclasses.replace(diff_file, file_size=size)


# --- untracked files ------------------------------------------------------


def split_nul(output: str) -> List[str]:
    return [p for p in output.split("\0") if p]


def list_untracked(
    repo_root: PathLike,
    paths: Sequence[str] = (),
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> List[str]:
    """Untracked, non-ignored file paths relative to *repo_root*."""
    result = run_git(
        ["ls-files", "--others", "--exclude-standard", "-z", *_pathspec(paths)],
        repo_root,
        timeout_ms,
    )
    # Nested repositories are listed as "dir/" and have no content of their own.
    return [p for p in split_nul(result.stdout) if not p.endswith("/")]


def _binary_added(path: str, size: Optional[int]) -> DiffFile:
    return DiffFile(
        path=path,
        status=FileChangeStatus.ADDED,
        is_binary=True,
        file_size=size,
    )


def _read_untracked(full_path: Path) -> bytes:
    if full_path.is_symlink():
        # git stores the link target as the blob content
        return os.readlink(full_path).encode("utf-8")
    return full_path.read_bytes()


def synthesize_added_file(path: str, content: bytes, size: Optional[int] = None) -> DiffFile:
    """Build an ``added`` DiffFile whose whole content is one chunk of additions."""
    if classify(path, content[:BINARY_SAMPLE_SIZE]).is_binary:
        return _binary_added(path, size)

    text = content.decode("utf-8", errors="replace")
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()

    chunks: Tuple[DiffChunk, ...] = ()
    if lines:
        count = len(lines)
        header = "@@ -0,0 +1 @@" if count == 1 else f"@@ -0,0 +1,{count} @@"
        changes = tuple(
            DiffChange(ChangeType.ADD, line, new_line=i + 1)
            for i, line in enumerate(lines)
        )
        chunks = (
            DiffChunk(
                old_start=0,
                old_lines=0,
                new_start=1,
                new_lines=count,
                header=header,
                changes=changes,
            ),
        )

    return DiffFile(
        path=path,
        status=FileChangeStatus.ADDED,
        additions=len(lines),
        chunks=chunks,
        file_size=size if size is not None else len(content),
    )


def _untracked_diff_files(
    repo_root: PathLike, options: DiffOptions, timeout_ms: int
) -> List[DiffFile]:
    results: List[DiffFile] = []
    for path in list_untracked(repo_root, options.paths, timeout_ms=timeout_ms):
        full_path = Path(repo_root) / path
        try:
            size = full_path.lstat().st_size
            if size > LARGE_FILE_THRESHOLD and not options.full_content:
                results.append(_binary_added(path, size))
                continue
            content = _read_untracked(full_path)
        except OSError as exc:
            logger.warning("cannot read untracked file %s: %s", path, exc)
            results.append(_binary_added(path, None))
            continue
        results.append(synthesize_added_file(path, content, size))
    return results


# --- file content ---------------------------------------------------------


def _resolve_inside(repo_root: PathLike, path: str) -> Path:
    root = Path(repo_root).resolve()
    full_path = (root / path).resolve()
    if not full_path.is_relative_to(root):
        raise PathNotFoundError(f"Path escapes repository: {path}")
    return full_path


def get_file_content(
    repo_root: PathLike,
    path: str,
    rev: RevisionSpec = WORKING_TREE,
    *,
    limit: Optional[int] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> bytes:
    """Return the bytes of *path* at *rev* (``git show rev:path``).

    WORKING_TREE reads the file from disk. With *limit*, at most that many
    bytes are read; callers pass PARTIAL_CONTENT_LIMIT for large files.
    """
    if rev == WORKING_TREE:
        full_path = _resolve_inside(repo_root, path)
        try:
            with open(full_path, "rb") as f:
                return f.read() if limit is None else f.read(limit)
        except FileNotFoundError as exc:
            raise PathNotFoundError(f"File not found in working tree: {path}") from exc
        except IsADirectoryError as exc:
            raise PathNotFoundError(f"Not a file: {path}") from exc

    spec = f"{rev}:{path}"
    if limit is None:
        return run_git(["show", spec], repo_root, timeout_ms).raw_stdout

    buf = bytearray()
    stream = execute_stream(["show", spec], repo_root)
    try:
        for chunk in stream:
            buf += chunk
            if len(buf) >= limit:
                break
    except GitExecError as exc:
        raise translate_error(exc) from exc
    finally:
        stream.close()
    return bytes(buf[:limit])


# --- name-only listings ---------------------------------------------------

_STATUS_CODES: Dict[str, FileChangeStatus] = {
    "A": FileChangeStatus.ADDED,
    "M": FileChangeStatus.MODIFIED,
    "D": FileChangeStatus.DELETED,
    "R": FileChangeStatus.RENAMED,
    "C": FileChangeStatus.COPIED,
    "?": FileChangeStatus.UNTRACKED,
}


def status_from_code(code: str) -> FileChangeStatus:
    """Map a git status letter (``M``, ``R100``, ``?``...) to FileChangeStatus."""
    return _STATUS_CODES.get(code[:1], FileChangeStatus.MODIFIED)


def parse_name_status(output: str, *, staged: bool = False) -> List[FileStatusEntry]:
    """Parse ``git diff --name-status -z`` output."""
    tokens = split_nul(output)
    entries: List[FileStatusEntry] = []
    i = 0
    while i < len(tokens):
        code = tokens[i]
        status = status_from_code(code)
        if status in (FileChangeStatus.RENAMED, FileChangeStatus.COPIED):
            if i + 2 >= len(tokens):
                break
            entries.append(
                FileStatusEntry(
                    path=tokens[i + 2],
                    status=status,
                    old_path=tokens[i + 1],
                    staged=staged,
                )
            )
            i += 3
        else:
            if i + 1 >= len(tokens):
                break
            entries.append(FileStatusEntry(path=tokens[i + 1], status=status, staged=staged))
            i += 2
    return entries


def parse_porcelain_status(output: str) -> List[FileStatusEntry]:
    """Parse ``git status --porcelain=v1 -z`` into staged and unstaged entries."""
    tokens = output.split("\0")
    entries: List[FileStatusEntry] = []
    i = 0
    while i < len(tokens):
        record = tokens[i]
        i += 1
        if len(record) < 4:
            continue
        x, y, path = record[0], record[1], record[3:]
        old_path: Optional[str] = None
        if x in "RC" or y in "RC":
            # -z puts the source path in the next field
            old_path = tokens[i] if i < len(tokens) else None
            i += 1

        if x == "?" and y == "?":
            entries.append(FileStatusEntry(path=path, status=FileChangeStatus.UNTRACKED))
            continue
        if x == "!":
            continue
        if x != " ":
            status = status_from_code(x)
            entries.append(
                FileStatusEntry(
                    path=path,
                    status=status,
                    old_path=old_path if x in "RC" else None,
                    staged=True,
                )
            )
        if y != " ":
            status = status_from_code(y)
            entries.append(
                FileStatusEntry(
                    path=path,
                    status=status,
                    old_path=old_path if y in "RC" else None,
                    staged=False,
                )
            )
    return entries


def get_changed_files(
    repo_root: PathLike,
    options: Optional[DiffOptions] = None,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> List[FileStatusEntry]:
    """List changed paths and their status without generating full diffs."""
    options = options or DiffOptions()
    if options.base == DEFAULT_BASE and options.target == WORKING_TREE:
        result = run_git(
            ["status", "--porcelain=v1", "-z", "--untracked-files=all", *_pathspec(options.paths)],
            repo_root,
            timeout_ms,
        )
        entries = parse_porcelain_status(result.stdout)
        if not options.include_untracked:
            entries = [e for e in entries if e.status != FileChangeStatus.UNTRACKED]
        return entries

    rev_args = _comparison_args(options)
    if rev_args is None:
        return []
    result = run_git(
        [*GIT_CONFIG_ARGS, "diff", "--name-status", "-z", "-M", *rev_args, *_pathspec(options.paths)],
        repo_root,
        timeout_ms,
    )
    entries = parse_name_status(result.stdout)
    if options.target == WORKING_TREE and options.include_untracked:
        entries.extend(
            FileStatusEntry(path=p, status=FileChangeStatus.UNTRACKED)
            for p in list_untracked(repo_root, options.paths, timeout_ms=timeout_ms)
        )
    return entries


def status_map(entries: Sequence[FileStatusEntry]) -> Dict[str, FileChangeStatus]:
    """Reduce change entries to ``{path: status}``; unstaged entries win."""
    mapping: Dict[str, FileChangeStatus] = {}
    for entry in sorted(entries, key=lambda e: e.staged, reverse=True):
        mapping[entry.path] = entry.status
    return mapping


# --- default base ---------------------------------------------------------

_MAINLINE_BRANCHES = ("main", "master")


def detect_default_base(
    repo_root: PathLike, *, timeout_ms: int = DEFAULT_TIMEOUT_MS
) -> Optional[str]:
    """Merge-base with main/master when on a feature branch, else None."""
    try:
        branch = execute(["rev-parse", "--abbrev-ref", "HEAD"], repo_root, timeout_ms).stdout.strip()
    except GitExecError as exc:
        logger.debug("cannot determine current branch: %s", exc)
        return None
    if branch in _MAINLINE_BRANCHES or branch == "HEAD":
        return None

    for mainline in _MAINLINE_BRANCHES:
        try:
            result = execute(["merge-base", mainline, "HEAD"], repo_root, timeout_ms)
        except GitExecError:
            continue
        base = result.stdout.strip()
        if base:
            logger.debug("default diff base for %s: %s (%s)", branch, base, mainline)
            return base
    return None
