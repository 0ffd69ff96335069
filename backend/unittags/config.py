from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from unittags.errors import ConfigError
from unittags.models import ResolutionMode

ENV_PREFIX = "UNITTAGS__"
_ENV_SECTIONS = ("unit_tags", "server")


@dataclass
class UnitTagsConfig:
    # Operator rule file: unit_id_pattern,alias
    file: str = ""
    # Learned-alias log, created on first write
    ota_file: str = ""
    mode: ResolutionMode = ResolutionMode.USER_FIRST

    def __post_init__(self) -> None:
        self.mode = ResolutionMode.parse(self.mode)


@dataclass
class ServerConfig:
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    rate_limit: str = "200/minute"


@dataclass
class AppConfig:
    unit_tags: UnitTagsConfig = field(default_factory=UnitTagsConfig)
    server: ServerConfig = field(default_factory=ServerConfig)


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Error reading config {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config root must be a mapping")
    return data


def _resolve_path(value: str, base_dir: Path) -> str:
    if not value:
        return value
    expanded = Path(os.path.expanduser(value))
    if not expanded.is_absolute():
        expanded = base_dir / expanded
    return str(expanded)


def load_config(path_str: str) -> AppConfig:
    path = Path(path_str)
    raw: dict[str, Any] = _read_yaml(path)

    # Environment overrides (prefix UNITTAGS__SECTION__KEY)
    # Example: UNITTAGS__UNIT_TAGS__MODE=ota_first
    for k, v in os_environ_items():
        if not k.startswith(ENV_PREFIX):
            continue
        parts = k[len(ENV_PREFIX):].split("__")
        if len(parts) != 2:
            continue
        section, key = parts[0].lower(), parts[1].lower()
        if section not in _ENV_SECTIONS:
            continue
        raw.setdefault(section, {})
        if isinstance(raw[section], dict):
            raw[section][key] = v

    tags_raw = raw.get("unit_tags") or {}
    server_raw = raw.get("server") or {}
    if not isinstance(tags_raw, dict) or not isinstance(server_raw, dict):
        raise ConfigError("unit_tags and server sections must be mappings")

    base_dir = path.parent
    try:
        unit_tags = UnitTagsConfig(**tags_raw)
        server = ServerConfig(**server_raw)
    except TypeError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e

    unit_tags.file = _resolve_path(str(unit_tags.file or ""), base_dir)
    unit_tags.ota_file = _resolve_path(str(unit_tags.ota_file or ""), base_dir)
    if isinstance(server.cors_origins, str):
        server.cors_origins = [o.strip() for o in server.cors_origins.split(",") if o.strip()]

    return AppConfig(unit_tags=unit_tags, server=server)


def os_environ_items() -> list[tuple[str, str]]:
    # Wrapped for testability
    return list(os.environ.items())
