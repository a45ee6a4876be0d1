"""Unified diff parser — raw ``git diff`` text to DiffFile records.

Pure and total: no I/O, and a malformed section degrades to a partial
DiffFile instead of aborting the remaining files. Handles new/deleted files,
renames, copies, binary markers, mode-only changes, quoted paths, and the
"no newline at end of file" marker.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

from qraftbox.git.binary import is_binary_extension
from qraftbox.git.executor import unquote_git_path
from qraftbox.git.models import (
    ChangeType,
    ChunkRange,
    DiffChange,
    DiffChunk,
    DiffFile,
    FileChangeStatus,
)

logger = logging.getLogger(__name__)

# --- Regex patterns for diff parsing ---

_SECTION_SPLIT_RE = re.compile(r"^(?=diff --git )", re.MULTILINE)
_HUNK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_BINARY_RE = re.compile(r"^Binary files .* differ$")
_RENAME_FROM_RE = re.compile(r"^rename from (.+)$")
_RENAME_TO_RE = re.compile(r"^rename to (.+)$")
_COPY_FROM_RE = re.compile(r"^copy from (.+)$")
_COPY_TO_RE = re.compile(r"^copy to (.+)$")
_DELETED_FILE_RE = re.compile(r"^deleted file mode \d+$")
_NEW_FILE_RE = re.compile(r"^new file mode \d+$")
_FILE_HEADER_OLD_RE = re.compile(r"^--- (.+)$")
_FILE_HEADER_NEW_RE = re.compile(r"^\+\+\+ (.+)$")

_DIFF_MARKER = "diff --git "
_GIT_BINARY_PATCH = "GIT binary patch"
_DEV_NULL = "/dev/null"


def _strip_prefix(path: str, prefix: str) -> str:
    return path[len(prefix):] if path.startswith(prefix) else path


def _header_path(raw: str, prefix: str) -> Optional[str]:
    """Path from a ``---``/``+++`` line, or None for /dev/null."""
    # git appends a tab when the name contains a space
    raw = raw.rstrip("\t")
    path = unquote_git_path(raw)
    if path == _DEV_NULL:
        return None
    return _strip_prefix(path, prefix)


def _read_quoted(text: str) -> Tuple[str, str]:
    """Split a leading C-quoted token off *text*: (token, remainder)."""
    i = 1
    while i < len(text):
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == '"':
            return text[: i + 1], text[i + 1 :].lstrip(" ")
        i += 1
    return text, ""


def _split_git_header(line: str) -> Tuple[str, str]:
    """Return (old, new) paths from a ``diff --git a/X b/Y`` line."""
    rest = line[len(_DIFF_MARKER):].rstrip("\r")

    if rest.startswith('"'):
        a_raw, b_raw = _read_quoted(rest)
    elif rest.endswith('"') and ' "' in rest:
        idx = rest.rfind(' "b/')
        if idx == -1:
            idx = rest.rindex(' "')
        a_raw, b_raw = rest[:idx], rest[idx + 1 :]
    else:
        # Unchanged path "a/X b/X": split in the middle so " b/" inside X is safe.
        half = (len(rest) - 1) // 2
        if (
            len(rest) % 2 == 1
            and rest[half] == " "
            and rest[:half][2:] == rest[half + 1 :][2:]
        ):
            a_raw, b_raw = rest[:half], rest[half + 1 :]
        else:
            idx = rest.find(" b/")
            if idx == -1:
                return rest, rest
            a_raw, b_raw = rest[:idx], rest[idx + 1 :]

    old = _strip_prefix(unquote_git_path(a_raw), "a/")
    new = _strip_prefix(unquote_git_path(b_raw), "b/")
    return old, new


def parse_chunk_header(header: str) -> ChunkRange:
    """Parse ``@@ -a[,b] +c[,d] @@``. A missing count means one line.

    Raises ValueError if *header* is not a chunk header.
    """
    m = _HUNK_HEADER_RE.match(header)
    if m is None:
        raise ValueError(f"not a chunk header: {header!r}")
    return ChunkRange(
        old_start=int(m.group(1)),
        old_lines=int(m.group(2)) if m.group(2) is not None else 1,
        new_start=int(m.group(3)),
        new_lines=int(m.group(4)) if m.group(4) is not None else 1,
    )


def _parse_chunk_body(
    lines: List[str], idx: int, rng: ChunkRange
) -> Tuple[List[DiffChange], int]:
    """Consume body lines from *idx* until the header's line counts are met.

    Returns the changes and the index of the first unconsumed line.
    """
    changes: List[DiffChange] = []
    old_line = rng.old_start
    new_line = rng.new_start
    old_left = rng.old_lines
    new_left = rng.new_lines
    total = len(lines)

    while idx < total and (old_left > 0 or new_left > 0):
        line = lines[idx]
        if line.startswith("@@") or line.startswith(_DIFF_MARKER):
            break
        if line.startswith("\\"):
            idx += 1
            continue

        marker, content = line[:1], line[1:]
        if marker == "+" and new_left > 0:
            changes.append(DiffChange(ChangeType.ADD, content, new_line=new_line))
            new_line += 1
            new_left -= 1
        elif marker == "-" and old_left > 0:
            changes.append(DiffChange(ChangeType.DELETE, content, old_line=old_line))
            old_line += 1
            old_left -= 1
        elif (marker == " " or line == "") and old_left > 0 and new_left > 0:
            # Some tools strip the space off blank context lines.
            changes.append(
                DiffChange(ChangeType.NORMAL, content, old_line=old_line, new_line=new_line)
            )
            old_line += 1
            new_line += 1
            old_left -= 1
            new_left -= 1
        else:
            logger.debug("chunk body ended early at line %d: %r", idx, line)
            break
        idx += 1

    # Trailing "\ No newline at end of file" after the last counted line.
    while idx < total and lines[idx].startswith("\\"):
        idx += 1
    return changes, idx


def parse_file_diff(section: str) -> DiffFile:
    """Parse one ``diff --git`` section into a DiffFile."""
    lines = section.split("\n")
    # The final newline is a terminator, not an empty context line.
    if lines and lines[-1] == "":
        lines.pop()
    total = len(lines)

    old_path: Optional[str] = None
    path = ""
    status = FileChangeStatus.MODIFIED
    is_binary = False
    explicit_old: Optional[str] = None
    chunks: List[DiffChunk] = []
    additions = 0
    deletions = 0

    idx = 0
    if lines and lines[0].startswith(_DIFF_MARKER):
        old_path, path = _split_git_header(lines[0])
        idx = 1

    # --- extended headers, up to the first chunk ---
    while idx < total:
        line = lines[idx].rstrip("\r")
        if line.startswith("@@"):
            break
        if _NEW_FILE_RE.match(line):
            status = FileChangeStatus.ADDED
        elif _DELETED_FILE_RE.match(line):
            status = FileChangeStatus.DELETED
        elif m := _RENAME_FROM_RE.match(line):
            status = FileChangeStatus.RENAMED
            explicit_old = unquote_git_path(m.group(1))
        elif m := _RENAME_TO_RE.match(line):
            status = FileChangeStatus.RENAMED
            path = unquote_git_path(m.group(1))
        elif m := _COPY_FROM_RE.match(line):
            status = FileChangeStatus.COPIED
            explicit_old = unquote_git_path(m.group(1))
        elif m := _COPY_TO_RE.match(line):
            status = FileChangeStatus.COPIED
            path = unquote_git_path(m.group(1))
        elif _BINARY_RE.match(line) or line == _GIT_BINARY_PATCH:
            is_binary = True
        elif m := _FILE_HEADER_OLD_RE.match(line):
            header_old = _header_path(m.group(1), "a/")
            if header_old is None:
                status = FileChangeStatus.ADDED
            else:
                old_path = header_old
        elif m := _FILE_HEADER_NEW_RE.match(line):
            header_new = _header_path(m.group(1), "b/")
            if header_new is None:
                status = FileChangeStatus.DELETED
            else:
                path = header_new
        idx += 1

    if not path:
        path = old_path or ""

    if is_binary_extension(path):
        is_binary = True

    # --- chunks ---
    while not is_binary and idx < total:
        line = lines[idx]
        if not line.startswith("@@"):
            idx += 1
            continue
        try:
            rng = parse_chunk_header(line)
        except ValueError:
            logger.warning("skipping malformed chunk header in %s: %r", path, line)
            idx += 1
            continue
        changes, idx = _parse_chunk_body(lines, idx + 1, rng)
        additions += sum(1 for c in changes if c.type == ChangeType.ADD)
        deletions += sum(1 for c in changes if c.type == ChangeType.DELETE)
        chunks.append(
            DiffChunk(
                old_start=rng.old_start,
                old_lines=rng.old_lines,
                new_start=rng.new_start,
                new_lines=rng.new_lines,
                header=line.rstrip("\r"),
                changes=tuple(changes),
            )
        )

    if status in (FileChangeStatus.RENAMED, FileChangeStatus.COPIED):
        resolved_old = explicit_old or old_path
    else:
        resolved_old = None

    return DiffFile(
        path=path,
        status=status,
        old_path=resolved_old,
        additions=additions,
        deletions=deletions,
        chunks=tuple(chunks),
        is_binary=is_binary,
    )


def parse_diff(raw: str) -> List[DiffFile]:
    """Split *raw* on ``diff --git`` boundaries and parse every section."""
    if not raw.strip():
        return []
    files: List[DiffFile] = []
    for section in _SECTION_SPLIT_RE.split(raw):
        # Text before the first marker (warnings, unmerged notices) is not a file.
        if not section.startswith(_DIFF_MARKER):
            continue
        files.append(parse_file_diff(section))
    return files


class DiffParser:
    """Parse unified diff text into DiffFile records.

    Usage::

        for diff_file in DiffParser(diff_text).parse():
            print(diff_file.path, diff_file.additions, diff_file.deletions)
    """

    def __init__(self, diff_text: str) -> None:
        self._text = diff_text

    def parse(self) -> List[DiffFile]:
        return parse_diff(self._text)
