"""Binary, image, and large-file detection.

Extension checks are pure string lookups; content checks only look at the
first ``BINARY_SAMPLE_SIZE`` bytes; ``check_large`` only stats the file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, FrozenSet, Optional, Union

from qraftbox.git.models import BinaryDetection, LargeFileInfo

logger = logging.getLogger(__name__)

LARGE_FILE_THRESHOLD = 1_048_576  # 1 MiB
PARTIAL_CONTENT_LIMIT = 10_240  # 10 KiB; callers truncate, not this module
BINARY_SAMPLE_SIZE = 8192
CONTROL_CHAR_RATIO = 0.1

IMAGE_EXTENSIONS: FrozenSet[str] = frozenset(
    {"png", "jpg", "jpeg", "gif", "svg", "webp", "ico", "bmp"}
)

BINARY_EXTENSIONS: FrozenSet[str] = IMAGE_EXTENSIONS | frozenset(
    {
        # documents
        "pdf",
        # archives
        "zip", "tar", "gz", "tgz", "bz2", "xz", "7z", "rar", "jar",
        # executables and libraries
        "exe", "dll", "so", "dylib", "o", "a", "class", "pyc", "wasm", "bin",
        # fonts
        "woff", "woff2", "ttf", "otf", "eot",
        # video
        "mp4", "webm", "mov", "avi", "mkv",
        # audio
        "mp3", "wav", "ogg", "flac",
    }
)

MIME_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "webp": "image/webp",
    "ico": "image/x-icon",
    "bmp": "image/bmp",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "tar": "application/x-tar",
    "gz": "application/gzip",
    "tgz": "application/gzip",
    "bz2": "application/x-bzip2",
    "xz": "application/x-xz",
    "7z": "application/x-7z-compressed",
    "rar": "application/vnd.rar",
    "jar": "application/java-archive",
    "exe": "application/x-msdownload",
    "dll": "application/x-msdownload",
    "so": "application/x-sharedlib",
    "dylib": "application/x-sharedlib",
    "wasm": "application/wasm",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "ttf": "font/ttf",
    "otf": "font/otf",
    "eot": "application/vnd.ms-fontobject",
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mov": "video/quicktime",
    "avi": "video/x-msvideo",
    "mkv": "video/x-matroska",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "flac": "audio/flac",
}

# Tab, LF and CR are ordinary text bytes.
_TEXT_CONTROL_BYTES = frozenset({9, 10, 13})


def extract_extension(path: str) -> str:
    """Return the lowercase extension without the dot ('' when there is none)."""
    name = path.rsplit("/", 1)[-1]
    dot = name.rfind(".")
    if dot <= 0 or dot == len(name) - 1:
        return ""
    return name[dot + 1 :].lower()


def is_binary_extension(path: str) -> bool:
    return extract_extension(path) in BINARY_EXTENSIONS


def is_image_extension(path: str) -> bool:
    return extract_extension(path) in IMAGE_EXTENSIONS


def get_mime_type(path: str) -> Optional[str]:
    return MIME_TYPES.get(extract_extension(path))


def detect_binary_content(sample: bytes) -> bool:
    """Return True if *sample* looks binary.

    Only the first 8 KiB are scanned. A NUL byte is conclusive; otherwise the
    sample is binary when more than 10% of it is non-whitespace control bytes.
    """
    window = sample[:BINARY_SAMPLE_SIZE]
    if not window:
        return False
    if b"\x00" in window:
        return True
    control = sum(1 for b in window if b < 32 and b not in _TEXT_CONTROL_BYTES)
    return control > len(window) * CONTROL_CHAR_RATIO


def classify(path: str, content: Optional[bytes] = None) -> BinaryDetection:
    """Combine extension and (optional) content checks for *path*.

    A binary extension wins without looking at *content*.
    """
    extension = extract_extension(path)
    if extension in BINARY_EXTENSIONS:
        return BinaryDetection(
            is_binary=True,
            is_image=extension in IMAGE_EXTENSIONS,
            extension=extension,
            mime_type=MIME_TYPES.get(extension),
        )

    if content is not None and detect_binary_content(content):
        return BinaryDetection(is_binary=True, is_image=False, extension=extension)

    return BinaryDetection(
        is_binary=False,
        is_image=False,
        extension=extension,
        mime_type=MIME_TYPES.get(extension),
    )


def check_large(path: str, project_root: Union[str, Path]) -> LargeFileInfo:
    """Stat ``project_root / path`` and compare against LARGE_FILE_THRESHOLD.

    A missing or unreadable file reports size 0 and is never large.
    """
    full_path = Path(project_root) / path
    try:
        size = full_path.stat().st_size
    except OSError as exc:
        logger.debug("cannot stat %s: %s", full_path, exc)
        size = 0
    return LargeFileInfo(
        is_large=size > LARGE_FILE_THRESHOLD,
        size=size,
        threshold=LARGE_FILE_THRESHOLD,
    )
