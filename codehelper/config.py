"""Bot configuration loader and path resolver."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from codehelper.llm import DEFAULT_MODEL


@dataclass(frozen=True)
class BotPaths:
    base_data_dir: Path
    db_path: Path
    secrets_dir: Path


@dataclass(frozen=True)
class BotConfig:
    name: str
    display_name: str
    llm_model: str
    llm_base_url: str | None
    paths: BotPaths


class ConfigError(ValueError):
    """Raised when bot configuration is invalid."""


def _validate_raw_config(raw: dict[str, Any]) -> None:
    required = {"name", "display_name"}
    missing = required.difference(raw.keys())
    if missing:
        missing_joined = ", ".join(sorted(missing))
        raise ConfigError(f"Missing required config keys: {missing_joined}")

    name = raw["name"]
    if not isinstance(name, str) or not name.strip() or "/" in name:
        raise ConfigError(f"name must be a non-empty string without '/': {name!r}")


def default_config_path(repo_root: Path | None = None) -> Path:
    if repo_root is None:
        repo_root = Path(__file__).resolve().parent.parent
    return repo_root / "config" / "codehelper.yaml"


def load_config(config_path: Path | None = None) -> BotConfig:
    """Load the bot config file and resolve data paths."""
    if config_path is None:
        config_path = default_config_path()
    if not config_path.exists():
        raise ConfigError(f"Config not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"Config file must contain a mapping: {config_path}")

    _validate_raw_config(raw)

    name = raw["name"].strip()
    data_dir_raw = raw.get("data_dir")
    if data_dir_raw:
        base_data_dir = Path(str(data_dir_raw)).expanduser()
    else:
        base_data_dir = Path.home() / "agentdata" / name
    paths = BotPaths(
        base_data_dir=base_data_dir,
        db_path=base_data_dir / "memory.db",
        secrets_dir=base_data_dir / "secrets",
    )

    base_url = str(raw.get("llm_base_url") or "").strip()
    return BotConfig(
        name=name,
        display_name=str(raw["display_name"]),
        llm_model=str(raw.get("llm_model", DEFAULT_MODEL)).strip() or DEFAULT_MODEL,
        llm_base_url=base_url or None,
        paths=paths,
    )


def ensure_data_directories(config: BotConfig) -> None:
    """Create data directories without touching existing data."""
    config.paths.base_data_dir.mkdir(parents=True, exist_ok=True)
    config.paths.secrets_dir.mkdir(parents=True, exist_ok=True)
