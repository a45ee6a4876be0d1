"""Staged changes — what ``git commit`` would record right now."""

from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from qraftbox.git.diff import (
    DEFAULT_CONTEXT_LINES,
    DIFF_FLAGS,
    GIT_CONFIG_ARGS,
    parse_name_status,
    run_git,
    translate_error,
)
from qraftbox.git.diff_parser import parse_diff
from qraftbox.git.executor import (
    DEFAULT_TIMEOUT_MS,
    GitExecError,
    PathLike,
    execute,
)
from qraftbox.git.models import DiffFile, StagedFile

logger = logging.getLogger(__name__)


def _count(value: str) -> int:
    # numstat prints "-" for binary files
    return int(value) if value.isdigit() else 0


def _parse_numstat(output: str) -> Dict[str, Tuple[int, int]]:
    """Parse ``git diff --numstat -z`` into ``{new_path: (additions, deletions)}``.

    Renames are written as ``a\\td\\t\\0old\\0new\\0``.
    """
    tokens = output.split("\0")
    counts: Dict[str, Tuple[int, int]] = {}
    i = 0
    while i < len(tokens):
        record = tokens[i]
        i += 1
        parts = record.split("\t", 2)
        if len(parts) < 3:
            continue
        added, deleted, path = parts
        if not path:
            if i + 1 >= len(tokens):
                break
            path = tokens[i + 1]
            i += 2
        counts[path] = (_count(added), _count(deleted))
    return counts


def get_staged_files(
    repo_root: PathLike, *, timeout_ms: int = DEFAULT_TIMEOUT_MS
) -> List[StagedFile]:
    """Staged paths with status and line counts."""
    status_out = run_git(
        [*GIT_CONFIG_ARGS, "diff", "--cached", "--name-status", "-z", "-M"],
        repo_root,
        timeout_ms,
    ).stdout
    numstat_out = run_git(
        [*GIT_CONFIG_ARGS, "diff", "--cached", "--numstat", "-z", "-M"],
        repo_root,
        timeout_ms,
    ).stdout

    counts = _parse_numstat(numstat_out)
    files: List[StagedFile] = []
    for entry in parse_name_status(status_out, staged=True):
        additions, deletions = counts.get(entry.path, (0, 0))
        files.append(
            StagedFile(
                path=entry.path,
                status=entry.status,
                additions=additions,
                deletions=deletions,
                old_path=entry.old_path,
            )
        )
    logger.debug("%d staged files", len(files))
    return files


def get_staged_diff(
    repo_root: PathLike,
    context_lines: int = DEFAULT_CONTEXT_LINES,
    *,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
) -> List[DiffFile]:
    """Parsed diff of the index against HEAD (``git diff --cached``)."""
    result = run_git(
        [*GIT_CONFIG_ARGS, "diff", "--cached", *DIFF_FLAGS, f"-U{context_lines}"],
        repo_root,
        timeout_ms,
    )
    return parse_diff(result.stdout)


def has_staged_changes(
    repo_root: PathLike, *, timeout_ms: int = DEFAULT_TIMEOUT_MS
) -> bool:
    """True when the index differs from HEAD."""
    try:
        result = execute(
            ["diff", "--cached", "--quiet"], repo_root, timeout_ms, ok_codes=(0, 1)
        )
    except GitExecError as exc:
        raise translate_error(exc) from exc
    return result.exit_code == 1

