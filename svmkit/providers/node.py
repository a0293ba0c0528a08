"""
Node.js provider.

Versions come from the official dist index and carry a 'v' prefix
(``v20.11.0``). Archives unpack into a single ``node-<version>-<os>-<arch>``
directory which is flattened into the version directory.
"""

import logging
from pathlib import Path
from typing import List

from svmkit.core.config_store import EnvVar
from svmkit.core.download import fetch_json
from svmkit.core.exceptions import CatalogFetchError
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import ProviderAdapter
from svmkit.toolchain.resolver import filter_newest_per_line, letter_prefix

logger = logging.getLogger(__name__)

NODE_OS = {"windows": "win", "macos": "darwin", "linux": "linux"}
NODE_ARCH = {"x64": "x64", "arm64": "arm64", "x86": "x86", "arm": "armv7l"}


class NodeProvider(ProviderAdapter):
    """Node.js releases from nodejs.org."""

    name = "node"
    default_base_url = "https://nodejs.org/dist"
    prefix_handler = letter_prefix("v")

    def _fetch_versions(self) -> List[str]:
        data = fetch_json(f"{self.base_url}/index.json", timeout=self.timeout)
        if not isinstance(data, list):
            raise CatalogFetchError("Unexpected Node.js index format")
        versions = [
            item["version"] for item in data if isinstance(item, dict) and item.get("version")
        ]
        return sort_versions_desc(versions)

    def list_all(self) -> List[str]:
        return self._fetch_versions()

    def list_filtered(self) -> List[str]:
        """Newest release of each major version."""
        return filter_newest_per_line(self._fetch_versions(), 1)

    def _archive_stem(self, version: str, os_name: str, arch: str) -> str:
        version = self.prefix_handler.add(version)
        return f"node-{version}-{NODE_OS.get(os_name, os_name)}-{NODE_ARCH.get(arch, arch)}"

    def download_url(self, version: str, os_name: str, arch: str) -> str:
        """Build e.g. https://nodejs.org/dist/v20.11.0/node-v20.11.0-linux-x64.tar.gz"""
        version = self.prefix_handler.add(version)
        ext = "zip" if os_name == "windows" else "tar.gz"
        return f"{self.base_url}/{version}/{self._archive_stem(version, os_name, arch)}.{ext}"

    def extract_subdir(self, version: str, archive_path: Path) -> str:
        return self._archive_stem(version, self.platform.os, self.platform.arch)

    def bin_dir(self, install_root: Path) -> Path:
        # Windows archives keep node.exe at the top level
        if self.platform.is_windows:
            return Path(install_root)
        return Path(install_root) / "bin"

    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        return [
            EnvVar("NODE_HOME", str(install_root)),
            EnvVar("PATH", str(self.bin_dir(install_root))),
            EnvVar("EXCLUDE_KEYWORDS", "node"),
        ]
