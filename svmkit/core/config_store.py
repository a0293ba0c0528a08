"""
Persistent configuration store for svmkit.

All state that outlives one invocation lives in a single JSON document,
`<home>/config.json`:

    {
      "install_dir": "/home/me/.svm",
      "sdks": {
        "node": {
          "current_version": "v20.11.0",
          "env_vars": [{"key": "NODE_HOME", "value": "..."}],
          "version_cache": {
            "v20.11.0": {"install_dir": "...", "cache_file_path": "..."}
          },
          "components": {}
        }
      }
    }

Toolchains with components (dotnet) keep the same three keys per component
under "components". Every mutation is a locked read-modify-write that is
written atomically before the method returns, unless it runs inside an open
transaction(), which saves all of its changes at once.
"""

import json
import logging
import os
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional

from filelock import FileLock, Timeout

from svmkit.core.exceptions import ConfigError, ConfigLockTimeout
from svmkit.core.filesystem import atomic_write

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.json"
HOME_ENV_VAR = "SVM_HOME"


@dataclass
class EnvVar:
    """A single environment variable declared by a toolchain."""

    key: str
    value: str


@dataclass
class VersionRecord:
    """
    Install and cache locations for one toolchain version.

    An empty install_dir means the version is not installed, even when
    cache_file_path still points at a downloaded archive.
    """

    install_dir: str = ""
    cache_file_path: str = ""

    @property
    def is_installed(self) -> bool:
        return bool(self.install_dir)


def get_default_home() -> Path:
    """
    Get the svmkit home directory.

    Returns:
        $SVM_HOME if set, otherwise ~/.svm (%USERPROFILE%\\.svm on Windows)
    """
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".svm"


def _empty_section() -> dict:
    return {"current_version": "", "env_vars": [], "version_cache": {}}


class ConfigStore:
    """
    Locked JSON store for install locations, cache entries and active versions.

    Example:
        >>> store = ConfigStore()
        >>> store.set_version_info("go", "1.21.5", VersionRecord(install_dir="/x/go/1.21.5"))
        >>> store.get_version_info("go", "1.21.5").is_installed
        True
    """

    def __init__(self, home: Optional[Path] = None, lock_timeout: int = 30):
        """
        Initialize the store.

        Args:
            home: Directory holding config.json (default: get_default_home())
            lock_timeout: Timeout in seconds for acquiring file lock
        """
        self.home = Path(home) if home is not None else get_default_home()
        self.config_path = self.home / CONFIG_FILENAME
        self.lock_path = self.home / "lock" / "config.lock"
        self.lock_timeout = lock_timeout
        self._document: Optional[dict] = None

        logger.debug(f"Initialized config store at {self.config_path}")

    # ------------------------------------------------------------------
    # Load / save boundary
    # ------------------------------------------------------------------

    def _default_config(self) -> dict:
        return {"install_dir": str(self.home), "sdks": {}}

    def load(self) -> dict:
        """
        Load the configuration document from disk.

        Returns:
            Configuration dictionary (defaults if the file does not exist)

        Raises:
            ConfigError: If the file exists but cannot be read or parsed
        """
        if not self.config_path.exists():
            logger.debug("Config file not found, using defaults")
            return self._default_config()

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            raise ConfigError(f"Failed to load config {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Invalid config format in {self.config_path}")

        data.setdefault("install_dir", str(self.home))
        if not data["install_dir"]:
            data["install_dir"] = str(self.home)
        data.setdefault("sdks", {})
        return data

    def save(self, data: dict):
        """
        Save the configuration document atomically.

        Raises:
            ConfigError: If the file cannot be written
        """
        try:
            atomic_write(self.config_path, json.dumps(data, indent=2, ensure_ascii=False))
        except OSError as e:
            raise ConfigError(f"Failed to save config {self.config_path}: {e}") from e

        logger.debug(f"Saved config with {len(data['sdks'])} toolchains")

    @contextmanager
    def _lock(self):
        """
        Context manager for config locking.

        Raises:
            ConfigLockTimeout: If lock cannot be acquired within timeout
        """
        self.lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock = FileLock(self.lock_path, timeout=self.lock_timeout)

        try:
            with lock:
                yield
        except Timeout as e:
            raise ConfigLockTimeout(
                f"Could not acquire config lock within {self.lock_timeout} seconds"
            ) from e

    @contextmanager
    def transaction(self) -> Iterator[dict]:
        """
        Locked read-modify-write of the whole document.

        The document is saved when the block exits without an exception.
        Accessors called inside the block, including nested transactions,
        work on the same document and are saved with it.

        Example:
            >>> with store.transaction() as data:
            ...     data["install_dir"] = "/opt/svm"
        """
        if self._document is not None:
            yield self._document
            return

        with self._lock():
            data = self.load()
            self._document = data
            try:
                yield data
            finally:
                self._document = None
            self.save(data)

    def _snapshot(self) -> dict:
        """The open transaction's document, or a fresh locked load."""
        if self._document is not None:
            return self._document
        with self._lock():
            return self.load()

    @staticmethod
    def _section(
        data: dict, toolchain: str, component: Optional[str] = None, create: bool = True
    ) -> Optional[dict]:
        sdks = data["sdks"]
        if toolchain not in sdks:
            if not create:
                return None
            sdks[toolchain] = dict(_empty_section(), components={})
        entry = sdks[toolchain]
        if component is None:
            for key, value in _empty_section().items():
                entry.setdefault(key, value)
            return entry

        components = entry.setdefault("components", {})
        if component not in components:
            if not create:
                return None
            components[component] = _empty_section()
        section = components[component]
        for key, value in _empty_section().items():
            section.setdefault(key, value)
        return section

    def _read_section(self, toolchain: str, component: Optional[str]) -> dict:
        data = self._snapshot()
        return self._section(data, toolchain, component, create=False) or _empty_section()

    # ------------------------------------------------------------------
    # Locations
    # ------------------------------------------------------------------

    def get_install_root(self) -> Path:
        """Get the directory under which toolchains are installed."""
        return Path(self._snapshot()["install_dir"])

    def set_install_root(self, path: Path):
        """Persist a new install root."""
        with self.transaction() as data:
            data["install_dir"] = str(path)
        logger.debug(f"Install directory set to {path}")

    def get_cache_dir(self) -> Path:
        """Get the archive cache directory (<install root>/cache)."""
        return self.get_install_root() / "cache"

    # ------------------------------------------------------------------
    # Active version
    # ------------------------------------------------------------------

    def get_current_version(self, toolchain: str, component: Optional[str] = None) -> str:
        """Get the active version, or '' if none is active."""
        return self._read_section(toolchain, component)["current_version"]

    def set_current_version(
        self, toolchain: str, version: str, component: Optional[str] = None
    ):
        """Set the active version."""
        with self.transaction() as data:
            self._section(data, toolchain, component)["current_version"] = version

    def get_env_vars(self, toolchain: str, component: Optional[str] = None) -> List[EnvVar]:
        """Get the environment snapshot last applied for the active version."""
        raw = self._read_section(toolchain, component)["env_vars"]
        return [EnvVar(key=item["key"], value=item["value"]) for item in raw]

    def set_env_vars(
        self, toolchain: str, env_vars: List[EnvVar], component: Optional[str] = None
    ):
        """Replace the environment snapshot."""
        with self.transaction() as data:
            self._section(data, toolchain, component)["env_vars"] = [
                asdict(var) for var in env_vars
            ]

    def set_active(
        self,
        toolchain: str,
        version: str,
        env_vars: List[EnvVar],
        component: Optional[str] = None,
    ):
        """Bind the active version and its environment snapshot in one write."""
        with self.transaction() as data:
            section = self._section(data, toolchain, component)
            section["current_version"] = version
            section["env_vars"] = [asdict(var) for var in env_vars]
        logger.debug(f"Active {toolchain} version is now {version}")

    def clear_active(self, toolchain: str, component: Optional[str] = None):
        """Clear the active version binding and its environment snapshot."""
        with self.transaction() as data:
            section = self._section(data, toolchain, component)
            section["current_version"] = ""
            section["env_vars"] = []

    # ------------------------------------------------------------------
    # Version records
    # ------------------------------------------------------------------

    def get_version_info(
        self, toolchain: str, version: str, component: Optional[str] = None
    ) -> Optional[VersionRecord]:
        """Get the record for a version, or None if there is none."""
        raw = self._read_section(toolchain, component)["version_cache"].get(version)
        if raw is None:
            return None
        return VersionRecord(
            install_dir=raw.get("install_dir", ""),
            cache_file_path=raw.get("cache_file_path", ""),
        )

    def set_version_info(
        self,
        toolchain: str,
        version: str,
        record: VersionRecord,
        component: Optional[str] = None,
    ):
        """Create or replace the record for a version."""
        with self.transaction() as data:
            section = self._section(data, toolchain, component)
            section["version_cache"][version] = asdict(record)

    def update_version_info(
        self,
        toolchain: str,
        version: str,
        component: Optional[str] = None,
        install_dir: Optional[str] = None,
        cache_file_path: Optional[str] = None,
    ) -> VersionRecord:
        """
        Update selected fields of a version record, creating it if needed.

        Returns:
            The record as stored
        """
        with self.transaction() as data:
            cache = self._section(data, toolchain, component)["version_cache"]
            raw = cache.setdefault(version, asdict(VersionRecord()))
            if install_dir is not None:
                raw["install_dir"] = install_dir
            if cache_file_path is not None:
                raw["cache_file_path"] = cache_file_path
            return VersionRecord(**raw)

    def remove_version_info(
        self, toolchain: str, version: str, component: Optional[str] = None
    ):
        """Drop the record for a version entirely."""
        with self.transaction() as data:
            section = self._section(data, toolchain, component, create=False)
            if section is not None:
                section["version_cache"].pop(version, None)

    def version_records(
        self, toolchain: str, component: Optional[str] = None
    ) -> Dict[str, VersionRecord]:
        """Get all version records for a toolchain."""
        raw = self._read_section(toolchain, component)["version_cache"]
        return {
            version: VersionRecord(
                install_dir=item.get("install_dir", ""),
                cache_file_path=item.get("cache_file_path", ""),
            )
            for version, item in raw.items()
        }

    def installed_versions(
        self, toolchain: str, component: Optional[str] = None
    ) -> List[str]:
        """Get versions whose record carries an install directory."""
        return [
            version
            for version, record in self.version_records(toolchain, component).items()
            if record.is_installed
        ]


__all__ = [
    "ConfigStore",
    "EnvVar",
    "VersionRecord",
    "get_default_home",
    "CONFIG_FILENAME",
]
