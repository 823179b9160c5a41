from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .models import ChangeKind
from .render import RenderOptions

DEFAULT_CONFIG_PATH = Path("~/.config/fstree.toml")
DEFAULT_SHOW_ATTRIBUTES = True
DEFAULT_LOG_LEVEL = "WARNING"
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    show_attributes: bool = DEFAULT_SHOW_ATTRIBUTES
    hidden_kinds: frozenset[ChangeKind] = field(default_factory=frozenset)
    log_level: str = DEFAULT_LOG_LEVEL

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            show_attributes=self.show_attributes,
            hidden_kinds=self.hidden_kinds,
        )


def parse_hidden_kinds(values: list[str] | str) -> frozenset[ChangeKind]:
    if isinstance(values, str):
        values = [item for item in values.split(",") if item.strip()]
    return frozenset(ChangeKind.parse(value) for value in values)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ValueError(f"[{name}] must be a table")
    return section


def settings_from_dict(data: dict[str, Any]) -> Settings:
    filetree = _section(data, "filetree")
    diff = _section(data, "diff")
    log = _section(data, "log")

    show_attributes = filetree.get("show-attributes", DEFAULT_SHOW_ATTRIBUTES)
    if not isinstance(show_attributes, bool):
        raise ValueError("filetree.show-attributes must be a boolean")

    log_level = str(log.get("level", DEFAULT_LOG_LEVEL)).upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"unknown log.level value: {log_level}")

    return Settings(
        show_attributes=show_attributes,
        hidden_kinds=parse_hidden_kinds(diff.get("hide", [])),
        log_level=log_level,
    )


def load_settings(path: Path | None = None) -> Settings:
    """Read settings from TOML; a missing default file means defaults."""
    config_path = (path or DEFAULT_CONFIG_PATH).expanduser()
    if not config_path.exists():
        if path is not None:
            raise FileNotFoundError(f"Config file not found: {config_path}")
        return Settings()
    with config_path.open("rb") as handle:
        data = tomllib.load(handle)
    return settings_from_dict(data)
