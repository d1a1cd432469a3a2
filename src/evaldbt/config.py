"""Optional ``evaldbt.yml`` configuration file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "evaldbt.yml"
VALID_FORMATS: frozenset[str] = frozenset({"rich", "json", "porcelain"})


@dataclass(frozen=True)
class Config:
    """Settings read from ``evaldbt.yml``; CLI flags take precedence."""

    rules: tuple[str, ...] = ()
    format: str | None = None
    strict: bool = False


def load_config(path: Path) -> Config:
    """Load settings from *path*.

    Falls back to defaults when the file is missing, unreadable, or not a
    YAML mapping.  Raises ``ValueError`` when a known key has the wrong type.
    """
    if not path.is_file():
        return Config()

    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except (OSError, yaml.YAMLError):
        logger.warning("Failed to read %s, using default settings", path)
        return Config()

    if not isinstance(data, dict):
        return Config()

    rules_raw = data.get("rules") or []
    if isinstance(rules_raw, str):
        rules_raw = [rules_raw]
    if not isinstance(rules_raw, list):
        msg = f"{path.name}: 'rules' must be a list"
        raise ValueError(msg)

    fmt = data.get("format")
    if fmt is not None and (not isinstance(fmt, str) or fmt not in VALID_FORMATS):
        msg = f"{path.name}: invalid format '{fmt}', must be one of {sorted(VALID_FORMATS)}"
        raise ValueError(msg)

    strict = data.get("strict", False)
    if not isinstance(strict, bool):
        msg = f"{path.name}: 'strict' must be true or false"
        raise ValueError(msg)

    return Config(rules=tuple(str(r) for r in rules_raw), format=fmt, strict=strict)
