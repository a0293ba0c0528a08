"""
Java provider (Eclipse Temurin via the Adoptium API).

Versions are feature releases ("21", "17"). The download URL is looked up
per version from the API, so a version without a build for this platform
yields a DownloadError and the installer falls back to an older release.
"""

import logging
from pathlib import Path
from typing import List, Optional

from svmkit.core.config_store import EnvVar
from svmkit.core.download import fetch_json
from svmkit.core.exceptions import CatalogFetchError, DownloadError
from svmkit.core.filesystem import flatten_directory
from svmkit.core.platform import PlatformInfo
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

ADOPTIUM_OS = {"macos": "mac"}
ADOPTIUM_ARCH = {"arm64": "aarch64"}


class JavaProvider(ProviderAdapter):
    """Temurin JDK builds."""

    name = "java"
    default_base_url = "https://api.adoptium.net/v3"

    def list_filtered(self) -> List[str]:
        data = fetch_json(f"{self.base_url}/info/available_releases", timeout=self.timeout)
        releases = data.get("available_releases") if isinstance(data, dict) else None
        if not isinstance(releases, list):
            raise CatalogFetchError("Unexpected Adoptium release list format")
        return sort_versions_desc(str(release) for release in releases)

    def list_all(self) -> List[str]:
        # The API only publishes feature releases
        return self.list_filtered()

    def download_url(self, version: str, os_name: str, arch: str) -> str:
        """
        Look up the binary link of the latest JDK build for a feature release.

        Returns:
            Download URL, or '' if no build exists for this platform

        Raises:
            DownloadError: If the Adoptium API cannot be queried
        """
        target = PlatformInfo(os_name, arch).alias(ADOPTIUM_OS, ADOPTIUM_ARCH)
        url = (
            f"{self.base_url}/assets/latest/{version}/hotspot"
            f"?architecture={target.arch}&os={target.os}&image_type=jdk&vendor=eclipse"
        )
        try:
            assets = fetch_json(url, timeout=self.timeout)
        except CatalogFetchError as e:
            raise DownloadError(f"Cannot look up Java {version} download: {e}") from e

        if not isinstance(assets, list) or not assets:
            logger.warning(f"No Java {version} build for {os_name}-{arch}")
            return ""
        package = assets[0].get("binary", {}).get("package", {})
        return package.get("link", "")

    def post_install(self, version: str, install_root: Path):
        """Flatten the single jdk-* directory (and the macOS Contents/Home bundle)."""
        jdk_dir = self._find_jdk_dir(Path(install_root))
        if jdk_dir is not None:
            logger.debug(f"Flattening {jdk_dir.name} into {install_root}")
            flatten_directory(install_root, jdk_dir.name)

        bundle_home = Path(install_root) / "Contents" / "Home"
        if bundle_home.is_dir():
            flatten_directory(install_root, "Contents/Home")

    @staticmethod
    def _find_jdk_dir(install_root: Path) -> Optional[Path]:
        directories = [entry for entry in install_root.iterdir() if entry.is_dir()]
        for entry in directories:
            name = entry.name.lower()
            if "jdk" in name or "java" in name:
                return entry
        if len(directories) == 1 and directories[0].name != "Contents":
            return directories[0]
        return None

    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        return [
            EnvVar("JAVA_HOME", str(install_root)),
            EnvVar("PATH", str(self.bin_dir(install_root))),
            EnvVar("EXCLUDE_KEYWORDS", "java,jdk,openjdk"),
        ]
