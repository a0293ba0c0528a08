"""
Provider interface for svmkit.

A provider supplies everything ecosystem-specific: the upstream version
catalog, download URLs, archive format, install layout and environment
variables. The installer and activation code only talk to this interface and
never branch on which ecosystem they are handling.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import List, Optional

from svmkit.core.config_store import EnvVar
from svmkit.core.filesystem import detect_archive_format
from svmkit.core.platform import PlatformInfo, detect_platform
from svmkit.core.settings import Settings
from svmkit.toolchain.cache import INSTALLER_SUFFIXES
from svmkit.toolchain.resolver import IDENTITY_PREFIX, PrefixHandler

logger = logging.getLogger(__name__)


class ArchiveKind(Enum):
    """How a downloaded file is turned into an install directory."""

    ZIP = "zip"
    TAR_GZ = "tar.gz"
    PLATFORM_INSTALLER = "installer"  # left for post_install to run
    AUTO = "auto"  # decided per file by archive_kind_for_file


class ProviderAdapter(ABC):
    """
    Abstract interface for one toolchain ecosystem.

    Subclasses set `name` and `default_base_url` and implement the catalog,
    URL and environment methods. Hooks and layout methods have defaults that
    suit a plain "archive with a bin/ directory" toolchain.
    """

    name: str = ""
    default_base_url: str = ""
    prefix_handler: PrefixHandler = IDENTITY_PREFIX

    def __init__(
        self,
        settings: Optional[Settings] = None,
        platform: Optional[PlatformInfo] = None,
    ):
        """
        Initialize provider.

        Args:
            settings: User settings (mirrors, timeouts)
            platform: Target platform (default: detected)
        """
        self.settings = settings or Settings()
        self.platform = platform or detect_platform()

    @property
    def base_url(self) -> str:
        """Upstream base URL, honouring a configured mirror."""
        return self.settings.mirror_for(self.name, self.default_base_url)

    @property
    def timeout(self) -> int:
        return self.settings.download.timeout

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @abstractmethod
    def list_filtered(self) -> List[str]:
        """
        List the newest version of each release line.

        Returns:
            Version strings in catalog spelling

        Raises:
            CatalogFetchError: If the upstream catalog cannot be read
        """
        pass

    @abstractmethod
    def list_all(self) -> List[str]:
        """List every published version."""
        pass

    @abstractmethod
    def download_url(self, version: str, os_name: str, arch: str) -> str:
        """
        Build the archive URL for a version.

        An empty string means no download exists for this platform, which the
        installer treats like a failed download.
        """
        pass

    # ------------------------------------------------------------------
    # Archive handling
    # ------------------------------------------------------------------

    def archive_kind(self) -> ArchiveKind:
        return ArchiveKind.AUTO

    def archive_kind_for_file(self, path: Path) -> Optional[ArchiveKind]:
        """
        Decide the archive kind from a file name.

        Returns:
            The matching kind, or None if the file is not recognized
        """
        if Path(path).name.lower().endswith(INSTALLER_SUFFIXES):
            return ArchiveKind.PLATFORM_INSTALLER
        fmt = detect_archive_format(path)
        if fmt == "zip":
            return ArchiveKind.ZIP
        if fmt == "tar.gz":
            return ArchiveKind.TAR_GZ
        return None

    def extract_subdir(self, version: str, archive_path: Path) -> str:
        """Name of the single top-level directory the archive unpacks into."""
        return ""

    # ------------------------------------------------------------------
    # Layout and environment
    # ------------------------------------------------------------------

    def bin_dir(self, install_root: Path) -> Path:
        return Path(install_root) / "bin"

    @abstractmethod
    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        """
        Declare the environment for a version.

        Args:
            version: Active version
            install_root: Directory the variables should point at (the
                'current' link, so values stay valid across switches)
        """
        pass

    def pre_install(self, version: str):
        """Hook run before anything is downloaded. Raise to abort."""
        pass

    def post_install(self, version: str, install_root: Path):
        """Hook run after extraction and flattening. Raise to abort."""
        pass


class HasComponents(ABC):
    """
    Capability for toolchains split into separately activated components.

    Each component has its own install tree (root/<component>/<version>) and
    its own 'current' link and active version.
    """

    current_component: str = ""

    @abstractmethod
    def components(self) -> List[str]:
        pass

    def set_component(self, component: str):
        """
        Select the component subsequent calls operate on.

        Raises:
            ValueError: If the component is unknown
        """
        if component not in self.components():
            raise ValueError(
                f"Unknown component '{component}' (expected one of {self.components()})"
            )
        self.current_component = component

    def component_home_var(self, component: str) -> str:
        """Environment variable pointing at a component's install, or '' if none."""
        return ""


__all__ = ["ArchiveKind", "ProviderAdapter", "HasComponents"]
