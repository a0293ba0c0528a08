"""
svmkit/toolchain/linking.py

'current' link management.

Each toolchain root holds one 'current' entry pointing at the active version
directory. It is a symlink on Unix-like systems and a directory junction on
Windows (junctions need no administrator rights). When neither can be created
the version directory is copied instead.
"""

import logging
import os
import subprocess
import sys
from enum import Enum
from pathlib import Path
from typing import Optional

from svmkit.core.exceptions import ActivationError, FilesystemError
from svmkit.core.filesystem import IS_WINDOWS, is_junction, recursive_copy, remove_path
from svmkit.core.platform import PlatformInfo, detect_platform

logger = logging.getLogger(__name__)


class LinkStrategy(Enum):
    """How the 'current' entry refers to a version directory."""

    SYMLINK = "symlink"  # Symbolic link (Unix)
    JUNCTION = "junction"  # Directory junction (Windows)
    COPY = "copy"  # Fallback: actual copy


def default_link_strategy(
    platform: Optional[PlatformInfo] = None, override: Optional[str] = None
) -> LinkStrategy:
    """
    Pick the link strategy for a platform.

    Args:
        platform: PlatformInfo instance (auto-detected if None)
        override: Strategy name from settings, if the user forced one
    """
    if override:
        return LinkStrategy(override)
    platform = platform or detect_platform()
    if platform.is_windows:
        return LinkStrategy.JUNCTION
    return LinkStrategy.SYMLINK


class LinkManager:
    """Creates and removes 'current' entries using one strategy."""

    def __init__(self, strategy: Optional[LinkStrategy] = None):
        """
        Initialize link manager.

        Args:
            strategy: Preferred strategy (default: per platform)
        """
        self.strategy = strategy or default_link_strategy()

    def create(self, link_path: Path, target_path: Path) -> LinkStrategy:
        """
        Point link_path at target_path, replacing anything already there.

        Falls back to copying when the preferred strategy fails.

        Returns:
            The strategy actually used

        Raises:
            ActivationError: If the target is missing or even copying fails
        """
        link_path = Path(link_path).absolute()
        target_path = Path(target_path).resolve()

        if not target_path.is_dir():
            raise ActivationError(f"Link target does not exist: {target_path}")

        self.remove(link_path)
        link_path.parent.mkdir(parents=True, exist_ok=True)

        if self.strategy != LinkStrategy.COPY:
            try:
                if self.strategy == LinkStrategy.JUNCTION:
                    self._create_junction(link_path, target_path)
                else:
                    os.symlink(target_path, link_path, target_is_directory=True)
                logger.debug(f"Created {self.strategy.value}: {link_path} -> {target_path}")
                return self.strategy
            except OSError as e:
                logger.warning(
                    f"Failed to create {self.strategy.value} at {link_path} ({e}), "
                    "copying the version directory instead"
                )
                # A failed mklink can leave an empty directory behind
                self.remove(link_path)

        try:
            recursive_copy(target_path, link_path)
        except FilesystemError as e:
            raise ActivationError(f"Failed to create {link_path}: {e}") from e
        logger.debug(f"Copied {target_path} to {link_path}")
        return LinkStrategy.COPY

    def _create_junction(self, link_path: Path, target_path: Path):
        """Create directory junction (Windows)."""
        if not IS_WINDOWS:
            raise OSError("Junctions are only supported on Windows")

        if sys.platform == "win32":
            import _winapi

            try:
                _winapi.CreateJunction(str(target_path), str(link_path))
                return
            except OSError as e:
                logger.debug(f"_winapi.CreateJunction failed: {e}, trying mklink")

        result = subprocess.run(
            ["cmd", "/c", "mklink", "/J", str(link_path), str(target_path)],
            capture_output=True,
            text=True,
        )
        if result.returncode != 0:
            raise OSError(f"mklink failed: {result.stderr.strip()}")

    def remove(self, link_path: Path):
        """
        Remove a 'current' entry, whether a link or a copied directory.

        Raises:
            ActivationError: If the entry cannot be removed
        """
        link_path = Path(link_path)
        if not (link_path.exists() or self.is_link(link_path)):
            return
        try:
            remove_path(link_path)
        except FilesystemError as e:
            raise ActivationError(f"Failed to remove {link_path}: {e}") from e
        logger.debug(f"Removed {link_path}")

    @staticmethod
    def is_link(path: Path) -> bool:
        return path.is_symlink() or is_junction(path)

    def resolve(self, link_path: Path) -> Optional[Path]:
        """
        Resolve a 'current' entry to its target.

        Returns:
            Absolute target path, the entry itself for a copy, or None if absent
        """
        link_path = Path(link_path)
        if self.is_link(link_path):
            target = os.readlink(link_path)
            # Junction targets come back with a \\?\ prefix
            if target.startswith("\\\\?\\"):
                target = target[4:]
            target_path = Path(target)
            if not target_path.is_absolute():
                target_path = (link_path.parent / target_path).resolve()
            return target_path
        if link_path.is_dir():
            return link_path
        return None

    def is_valid(self, link_path: Path) -> bool:
        """Return True if the entry exists and reaches an existing directory."""
        target = self.resolve(link_path)
        return target is not None and target.is_dir()


__all__ = ["LinkStrategy", "LinkManager", "default_link_strategy"]
