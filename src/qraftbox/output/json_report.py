"""JSON reporter — camelCase dicts for API consumers and scripts."""

from __future__ import annotations

import json
from typing import Any, Dict, Sequence

from qraftbox.git.models import (
    DiffChange,
    DiffChunk,
    DiffFile,
    FileNode,
    FileStatusEntry,
    LargeFileInfo,
    StagedFile,
)


def _drop_none(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


def change_to_dict(change: DiffChange) -> Dict[str, Any]:
    return _drop_none({
        "type": change.type.value,
        "content": change.content,
        "oldLine": change.old_line,
        "newLine": change.new_line,
    })


def chunk_to_dict(chunk: DiffChunk) -> Dict[str, Any]:
    return {
        "header": chunk.header,
        "oldStart": chunk.old_start,
        "oldLines": chunk.old_lines,
        "newStart": chunk.new_start,
        "newLines": chunk.new_lines,
        "changes": [change_to_dict(c) for c in chunk.changes],
    }


def diff_file_to_dict(diff_file: DiffFile) -> Dict[str, Any]:
    return _drop_none({
        "path": diff_file.path,
        "status": diff_file.status.value,
        "oldPath": diff_file.old_path,
        "additions": diff_file.additions,
        "deletions": diff_file.deletions,
        "isBinary": diff_file.is_binary,
        "fileSize": diff_file.file_size,
        "chunks": [chunk_to_dict(c) for c in diff_file.chunks],
    })


def tree_to_dict(node: FileNode) -> Dict[str, Any]:
    data = _drop_none({
        "name": node.name,
        "path": node.path,
        "type": node.type.value,
        "status": node.status.value if node.status is not None else None,
        "isBinary": node.is_binary,
    })
    if node.children is not None:
        data["children"] = [tree_to_dict(child) for child in node.children]
    return data


def status_entry_to_dict(entry: FileStatusEntry) -> Dict[str, Any]:
    return _drop_none({
        "path": entry.path,
        "status": entry.status.value,
        "oldPath": entry.old_path,
        "staged": entry.staged,
    })


def staged_file_to_dict(staged: StagedFile) -> Dict[str, Any]:
    return _drop_none({
        "path": staged.path,
        "status": staged.status.value,
        "oldPath": staged.old_path,
        "additions": staged.additions,
        "deletions": staged.deletions,
    })


def large_file_to_dict(info: LargeFileInfo) -> Dict[str, Any]:
    return {"isLarge": info.is_large, "size": info.size, "threshold": info.threshold}


def diff_stats(files: Sequence[DiffFile]) -> Dict[str, int]:
    return {
        "totalFiles": len(files),
        "additions": sum(f.additions for f in files),
        "deletions": sum(f.deletions for f in files),
    }


def diff_to_dict(files: Sequence[DiffFile]) -> Dict[str, Any]:
    """Envelope for a whole diff: files plus totals."""
    return {
        "files": [diff_file_to_dict(f) for f in files],
        "stats": diff_stats(files),
    }


def status_to_dict(entries: Sequence[FileStatusEntry]) -> Dict[str, Any]:
    return {"files": [status_entry_to_dict(e) for e in entries]}


def staged_to_dict(files: Sequence[StagedFile]) -> Dict[str, Any]:
    return {
        "files": [staged_file_to_dict(f) for f in files],
        "stats": {
            "totalFiles": len(files),
            "additions": sum(f.additions for f in files),
            "deletions": sum(f.deletions for f in files),
        },
    }


def render(data: Any) -> str:
    """Return formatted JSON string."""
    return json.dumps(data, indent=2, ensure_ascii=False)
