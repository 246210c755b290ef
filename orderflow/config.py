"""Application settings loaded from the environment and profile files."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml


@dataclass
class Config:
    """Settings shared by every service."""

    env: str = "dev"
    kafka_brokers: list[str] = field(default_factory=lambda: ["localhost:9092"])
    log_level: str = "info"


def _read_profile(directory: Path, env: str) -> dict[str, Any]:
    """Values from ``<directory>/<env>.<ext>``; a missing or broken file gives none."""
    for extension in ("json", "yaml", "yml"):
        path = directory / f"{env}.{extension}"
        if path.is_file():
            try:
                document = yaml.safe_load(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, yaml.YAMLError):
                return {}
            if not isinstance(document, dict):
                return {}
            return {str(key).lower(): value for key, value in document.items()}
    return {}


def load_config(
    environ: Mapping[str, str] | None = None,
    config_dir: str | os.PathLike[str] | None = None,
) -> Config:
    """Build a :class:`Config` from ``APP_*`` variables, then the profile file, then defaults."""
    variables = os.environ if environ is None else environ
    env = variables.get("APP_ENV") or "dev"
    profile = _read_profile(Path(config_dir if config_dir is not None else "./config"), env)

    def lookup(key: str) -> Any:
        return variables.get("APP_" + key) or profile.get(key.lower())

    brokers = lookup("KAFKA_BROKERS")
    level = lookup("LOG_LEVEL")
    if brokers is None:
        brokers = ["localhost:9092"]
    elif isinstance(brokers, str):
        brokers = brokers.split()
    elif isinstance(brokers, (list, tuple)):
        brokers = [str(item) for item in brokers]
    else:
        brokers = [str(brokers)]
    return Config(env=env, kafka_brokers=brokers, log_level="info" if level is None else str(level))