"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

OutputFormat = Literal["terminal", "json", "yaml"]
TreeModeName = Literal["all", "changed"]

OUTPUT_FORMATS = ("terminal", "json", "yaml")
TREE_MODES = ("all", "changed")


@dataclass
class GitConfig:
    timeout_ms: int = 30_000


@dataclass
class DiffConfig:
    context_lines: int = 3
    include_untracked: bool = True
    auto_base: bool = False  # diff against merge-base with main/master on feature branches


@dataclass
class TreeConfig:
    mode: TreeModeName = "all"


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"


@dataclass
class LoggingConfig:
    level: str = "warning"


@dataclass
class QraftboxConfig:
    git: GitConfig = field(default_factory=GitConfig)
    diff: DiffConfig = field(default_factory=DiffConfig)
    tree: TreeConfig = field(default_factory=TreeConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
