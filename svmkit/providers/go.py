"""Go provider backed by the go.dev download feed."""

import logging
from pathlib import Path
from typing import List

from svmkit.core.config_store import EnvVar
from svmkit.core.download import fetch_json
from svmkit.core.exceptions import CatalogFetchError
from svmkit.core.platform import PlatformInfo
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import ProviderAdapter
from svmkit.toolchain.resolver import filter_newest_per_line

logger = logging.getLogger(__name__)

GO_OS = {"macos": "darwin"}
GO_ARCH = {"x64": "amd64", "x86": "386", "arm": "armv6l"}


class GoProvider(ProviderAdapter):
    """
    Go releases from go.dev.

    The feed lists every release including betas; only stable ones are kept,
    with the "go" prefix dropped ("go1.21.5" -> "1.21.5").
    """

    name = "go"
    default_base_url = "https://go.dev/dl"
    download_base_url = "https://dl.google.com/go"

    def _fetch_versions(self) -> List[str]:
        data = fetch_json(f"{self.base_url}/?mode=json&include=all", timeout=self.timeout)
        if not isinstance(data, list):
            raise CatalogFetchError("Unexpected Go release feed format")

        versions = []
        for item in data:
            if not isinstance(item, dict) or not item.get("stable"):
                continue
            version = item.get("version", "")
            if version.startswith("go"):
                version = version[2:]
            if version:
                versions.append(version)
        return sort_versions_desc(versions)

    def list_all(self) -> List[str]:
        return self._fetch_versions()

    def list_filtered(self) -> List[str]:
        """Newest patch release of each minor version."""
        return filter_newest_per_line(self._fetch_versions(), 2)

    def download_url(self, version: str, os_name: str, arch: str) -> str:
        target = PlatformInfo(os_name, arch).alias(GO_OS, GO_ARCH)
        ext = "zip" if os_name == "windows" else "tar.gz"
        # A mirror serves the feed and the archives from one base URL
        base = self.base_url
        if base == self.default_base_url:
            base = self.download_base_url
        return f"{base}/go{version}.{target.os}-{target.arch}.{ext}"

    def extract_subdir(self, version: str, archive_path: Path) -> str:
        return "go"

    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        return [
            EnvVar("GOROOT", str(install_root)),
            EnvVar("PATH", str(self.bin_dir(install_root))),
            EnvVar("EXCLUDE_KEYWORDS", "golang,go"),
        ]
