"""
Downloaded-archive cache.

Maps (toolchain, version) to an archive already on disk so reinstalls skip
the download. Entries are stored in the version record's cache_file_path and
are never evicted here.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple

from svmkit.core.config_store import ConfigStore

logger = logging.getLogger(__name__)

# Interactive installers cannot be replayed unattended
INSTALLER_SUFFIXES = (".pkg", ".msi", ".exe")


class CacheStore:
    """
    Archive lookup backed by the config store.

    Example:
        >>> cache = CacheStore(store)
        >>> path, hit = cache.get("go", "1.21.5")
    """

    def __init__(self, store: ConfigStore, component: Optional[str] = None):
        self.store = store
        self.component = component

    def get(self, toolchain: str, version: str) -> Tuple[Optional[Path], bool]:
        """
        Look up a cached archive.

        A recorded path that no longer exists, or that names a platform
        installer, is reported as a miss.

        Returns:
            (archive path, True) on a hit, (None, False) on a miss
        """
        record = self.store.get_version_info(toolchain, version, self.component)
        if record is None or not record.cache_file_path:
            return None, False

        path = Path(record.cache_file_path)
        if not path.is_file():
            logger.debug(f"Cached archive for {toolchain} {version} is gone: {path}")
            return None, False
        if path.name.lower().endswith(INSTALLER_SUFFIXES):
            logger.debug(f"Not reusing cached installer {path}")
            return None, False

        logger.info(f"Using cached archive {path}")
        return path, True

    def put(self, toolchain: str, version: str, path: Path):
        """Record the archive for a version."""
        self.store.update_version_info(
            toolchain, version, self.component, cache_file_path=str(path)
        )
        logger.debug(f"Cached {toolchain} {version} archive at {path}")


__all__ = ["CacheStore", "INSTALLER_SUFFIXES"]
