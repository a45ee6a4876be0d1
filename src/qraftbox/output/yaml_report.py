"""YAML reporter — the JSON reporter's dicts through PyYAML."""

from __future__ import annotations

from typing import Any

import yaml


def render(data: Any) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
