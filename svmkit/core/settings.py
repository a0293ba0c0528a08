"""YAML user settings for svmkit.

Settings live in an optional `settings.yaml` next to `config.json`. Unlike the
config store, this file is written by hand and only read by svmkit:

    download:
      timeout: 60
      chunk_size: 65536
    mirrors:
      node: https://npmmirror.com/mirrors/node
      go: https://golang.google.cn/dl
    link_strategy: copy
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

import yaml

from svmkit.core.exceptions import ConfigError

SETTINGS_FILENAME = "settings.yaml"
VALID_LINK_STRATEGIES = ["symlink", "junction", "copy"]


@dataclass
class DownloadSettings:
    """HTTP transfer settings."""

    timeout: int = 30
    chunk_size: int = 8192


@dataclass
class Settings:
    """User settings for svmkit."""

    download: DownloadSettings = field(default_factory=DownloadSettings)
    mirrors: Dict[str, str] = field(default_factory=dict)  # toolchain -> base URL
    link_strategy: Optional[str] = None  # None selects per platform

    def mirror_for(self, toolchain: str, default: str) -> str:
        """Return the configured base URL for a toolchain, without trailing slash."""
        return self.mirrors.get(toolchain, default).rstrip("/")


def load_settings(settings_path: Path) -> Settings:
    """
    Load settings.yaml.

    A missing or empty file yields the defaults.

    Args:
        settings_path: Path to settings.yaml

    Returns:
        Parsed and validated settings

    Raises:
        ConfigError: If the file is not valid YAML or holds invalid values
    """
    if not settings_path.exists():
        return Settings()

    try:
        with open(settings_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in {settings_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {settings_path}: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"{settings_path} must contain a mapping")

    return _parse_and_validate(data)


def _parse_and_validate(data: dict) -> Settings:
    """Parse and validate settings data."""
    download = _parse_download(data.get("download") or {})

    mirrors = data.get("mirrors") or {}
    if not isinstance(mirrors, dict):
        raise ConfigError("mirrors must be a dictionary")
    for name, url in mirrors.items():
        if not isinstance(url, str) or not url.startswith(("http://", "https://")):
            raise ConfigError(f"mirrors.{name} must be an http(s) URL")

    link_strategy = data.get("link_strategy")
    if link_strategy is not None and link_strategy not in VALID_LINK_STRATEGIES:
        raise ConfigError(
            f"Invalid link_strategy: {link_strategy} "
            f"(expected one of {VALID_LINK_STRATEGIES})"
        )

    return Settings(
        download=download,
        mirrors={str(k): v for k, v in mirrors.items()},
        link_strategy=link_strategy,
    )


def _parse_download(data: dict) -> DownloadSettings:
    """Parse download settings."""
    if not isinstance(data, dict):
        raise ConfigError("download must be a dictionary")

    settings = DownloadSettings()
    for name in ("timeout", "chunk_size"):
        if name not in data:
            continue
        value = data[name]
        # bool is an int subclass; reject it explicitly
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            raise ConfigError(f"download.{name} must be a positive integer")
        setattr(settings, name, value)
    return settings


__all__ = ["Settings", "DownloadSettings", "load_settings", "SETTINGS_FILENAME"]
