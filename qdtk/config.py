"""Settings from config files, environment and command-line flags"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Dict, Optional

import yaml

from qdtk.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_DIR = ".qdtk"
CONFIG_FILE = "config.yml"

ENV_URL = ("QDRANT_URL", "QDTK_URL")
ENV_API_KEY = ("QDRANT_API_KEY", "QDTK_API_KEY")


@dataclass
class Settings:
    url: Optional[str] = None
    api_key: Optional[str] = None
    timeout: float = 30.0
    verify_tls: bool = True
    batch_size: int = 100
    retry_delay: float = 5.0
    max_retries: Optional[int] = None
    scan_limit: int = 10000

    def update(self, values: Dict, source: str = "overrides"):
        """Apply known keys from ``values``; None values are skipped"""
        known = {f.name for f in fields(self)}
        for key, value in values.items():
            if key not in known:
                logger.warning("Ignoring unknown setting '%s' in %s", key, source)
                continue
            if value is not None:
                setattr(self, key, value)


def global_config_path() -> Path:
    return Path.home() / CONFIG_DIR / CONFIG_FILE


def project_config_path() -> Path:
    return Path.cwd() / CONFIG_DIR / CONFIG_FILE


def _read_yaml(path: Path) -> Dict:
    if not path.exists():
        return {}
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read config {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must be a mapping, got {type(data).__name__}")
    logger.debug("Loaded config from %s", path)
    return data


def _first_env(names) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def load_settings(overrides: Optional[Dict] = None, require_url: bool = True) -> Settings:
    """Load global and project config, then environment, then ``overrides``"""
    settings = Settings()

    for path in (global_config_path(), project_config_path()):
        settings.update(_read_yaml(path), source=str(path))

    settings.update(
        {"url": _first_env(ENV_URL), "api_key": _first_env(ENV_API_KEY)},
        source="environment",
    )

    if overrides:
        settings.update(overrides, source="command line")

    if settings.url:
        settings.url = settings.url.rstrip("/")
    elif require_url:
        raise ConfigError(
            "No Qdrant URL. Use --url, set QDRANT_URL, or add 'url' to "
            f"~/{CONFIG_DIR}/{CONFIG_FILE}"
        )

    return settings
