"""Load and merge configuration from .qraftbox.toml and env vars."""

from __future__ import annotations

import dataclasses
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from qraftbox.config.defaults import CONFIG_FILENAME
from qraftbox.config.schema import (
    OUTPUT_FORMATS,
    TREE_MODES,
    DiffConfig,
    GitConfig,
    LoggingConfig,
    OutputConfig,
    QraftboxConfig,
    TreeConfig,
)
from qraftbox.logging_config import FALLBACK_LOG_LEVEL_ENV, LOG_LEVEL_ENV

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(repo_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = repo_root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _env_int(name: str) -> Optional[int]:
    val = os.environ.get(name)
    if not val:
        return None
    try:
        number = int(val)
    except ValueError:
        logger.warning("ignoring %s=%r: not an integer", name, val)
        return None
    if number < 0:
        logger.warning("ignoring %s=%r: must not be negative", name, val)
        return None
    return number


def _merge_env_overrides(cfg: QraftboxConfig) -> None:
    """Apply QRAFTBOX_* environment variable overrides."""
    if (timeout := _env_int("QRAFTBOX_TIMEOUT_MS")) is not None and timeout > 0:
        cfg.git.timeout_ms = timeout
    if (context := _env_int("QRAFTBOX_CONTEXT_LINES")) is not None:
        cfg.diff.context_lines = context
    if val := os.environ.get("QRAFTBOX_FORMAT"):
        if val in OUTPUT_FORMATS:
            cfg.output.format = val  # type: ignore[assignment]
    if val := os.environ.get(LOG_LEVEL_ENV) or os.environ.get(FALLBACK_LOG_LEVEL_ENV):
        cfg.logging.level = val


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    body = data.get(section, {})
    if not isinstance(body, dict):
        raise ConfigError(f"[{section}] must be a table")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in body.items() if k in valid_fields}
    return cls(**filtered)


def _validate(cfg: QraftboxConfig) -> None:
    if not isinstance(cfg.git.timeout_ms, int) or cfg.git.timeout_ms <= 0:
        raise ConfigError(f"git.timeout_ms must be a positive integer, got {cfg.git.timeout_ms!r}")
    if not isinstance(cfg.diff.context_lines, int) or cfg.diff.context_lines < 0:
        raise ConfigError(
            f"diff.context_lines must be a non-negative integer, got {cfg.diff.context_lines!r}"
        )
    if cfg.tree.mode not in TREE_MODES:
        raise ConfigError(f"tree.mode must be one of {', '.join(TREE_MODES)}, got {cfg.tree.mode!r}")
    if cfg.output.format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {cfg.output.format!r}"
        )


def load_config(
    repo_root: Path,
    config_override: Optional[str] = None,
) -> QraftboxConfig:
    """Load, validate, and return a QraftboxConfig."""
    config_path = find_config_file(repo_root, config_override)

    if config_path is None:
        cfg = QraftboxConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = QraftboxConfig(
            git=_build_section(raw, GitConfig, "git"),
            diff=_build_section(raw, DiffConfig, "diff"),
            tree=_build_section(raw, TreeConfig, "tree"),
            output=_build_section(raw, OutputConfig, "output"),
            logging=_build_section(raw, LoggingConfig, "logging"),
        )
        _validate(cfg)
        logger.debug("loaded config from %s", config_path)

    _merge_env_overrides(cfg)
    return cfg
