"""
.NET provider.

.NET ships several separately installable components (SDK, runtime, ASP.NET
Core runtime, Windows Desktop runtime). Each one gets its own install tree
and active version, selected with set_component().

Release metadata:
    releases-index.json     one entry per channel ("8.0"), with its latest release
    <channel>/releases.json every release of a channel, with per-component files
"""

import logging
from pathlib import Path
from typing import List, Optional

from svmkit.core.config_store import EnvVar
from svmkit.core.download import fetch_json
from svmkit.core.exceptions import CatalogFetchError, DownloadError
from svmkit.core.platform import PlatformInfo
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import HasComponents, ProviderAdapter

logger = logging.getLogger(__name__)

COMPONENTS = ["sdk", "runtime", "asp-core", "desktop"]

# Component name -> key of its section in a releases.json entry
COMPONENT_KEYS = {
    "sdk": "sdk",
    "runtime": "runtime",
    "asp-core": "aspnetcore-runtime",
    "desktop": "windowsdesktop",
}

RID_OS = {"windows": "win", "macos": "osx", "linux": "linux"}
SUPPORTED_PHASES = ("active", "preview")
ARCHIVE_SUFFIXES = (".zip", ".tar.gz")


def runtime_identifier(os_name: str, arch: str) -> str:
    """
    Build a .NET runtime identifier.

    Example:
        >>> runtime_identifier("macos", "arm64")
        'osx-arm64'
    """
    target = PlatformInfo(os_name, arch).alias(RID_OS, {})
    return f"{target.os}-{target.arch}"


class DotNetProvider(HasComponents, ProviderAdapter):
    """Microsoft .NET releases."""

    name = "dotnet"
    default_base_url = "https://dotnetcli.blob.core.windows.net/dotnet/release-metadata"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.current_component = COMPONENTS[0]

    def components(self) -> List[str]:
        return list(COMPONENTS)

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def _channels(self) -> List[dict]:
        """Channels still in support or in preview."""
        data = fetch_json(f"{self.base_url}/releases-index.json", timeout=self.timeout)
        index = data.get("releases-index") if isinstance(data, dict) else None
        if not isinstance(index, list):
            raise CatalogFetchError("Unexpected .NET releases index format")
        return [
            channel
            for channel in index
            if channel.get("support-phase") in SUPPORTED_PHASES
        ]

    def _channel_releases(self, channel: dict) -> List[dict]:
        data = fetch_json(channel["releases.json"], timeout=self.timeout)
        releases = data.get("releases") if isinstance(data, dict) else None
        if not isinstance(releases, list):
            raise CatalogFetchError(
                f"Unexpected release list format for .NET {channel.get('channel-version')}"
            )
        return releases

    def list_filtered(self) -> List[str]:
        """Latest release of each supported channel."""
        return sort_versions_desc(
            channel["latest-release"]
            for channel in self._channels()
            if channel.get("latest-release")
        )

    def list_all(self) -> List[str]:
        """
        Every release of every supported channel.

        A channel whose release list cannot be fetched is skipped with a
        warning so the remaining channels are still listed.
        """
        versions = []
        for channel in self._channels():
            try:
                releases = self._channel_releases(channel)
            except CatalogFetchError as e:
                logger.warning(f"Skipping .NET {channel.get('channel-version')}: {e}")
                continue
            versions.extend(r["release-version"] for r in releases if r.get("release-version"))
        return sort_versions_desc(set(versions))

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def _find_release(self, version: str) -> Optional[dict]:
        channels = self._channels()
        # "8.0.1" lives in channel "8.0"; search other channels only if needed
        line = ".".join(version.split(".")[:2])
        matching = [c for c in channels if c.get("channel-version") == line]
        for channel in matching or channels:
            for release in self._channel_releases(channel):
                if release.get("release-version") == version:
                    return release
        return None

    def _component_files(self, release: dict) -> List[dict]:
        section = release.get(COMPONENT_KEYS[self.current_component]) or {}
        files = section.get("files") or []
        return files or release.get("files") or []

    def _score(self, file_name: str, rid: str, version: str) -> int:
        """
        Rank a candidate file; -1 means unusable.

        The file must match the runtime identifier and be an archive. Files
        naming the right component, the exact version and the platform's
        native archive format rank higher.
        """
        if not file_name.endswith(ARCHIVE_SUFFIXES) or rid not in file_name:
            return -1

        score = 10
        component = self.current_component
        if component == "sdk" and "sdk" in file_name:
            score += 5
        elif component == "runtime" and "runtime" in file_name and not any(
            other in file_name for other in ("aspnetcore", "windowsdesktop")
        ):
            score += 5
        elif component == "asp-core" and "aspnetcore" in file_name:
            score += 5
        elif component == "desktop" and "windowsdesktop" in file_name:
            score += 5

        if version in file_name:
            score += 3

        native = ".zip" if rid.startswith("win-") else ".tar.gz"
        if file_name.endswith(native):
            score += 5
        return score

    def download_url(self, version: str, os_name: str, arch: str) -> str:
        """
        Pick the best archive of the current component for a platform.

        Returns:
            Download URL, or '' if the release has no usable file

        Raises:
            DownloadError: If release metadata cannot be fetched
        """
        try:
            release = self._find_release(version)
        except CatalogFetchError as e:
            raise DownloadError(f"Cannot look up .NET {version} download: {e}") from e

        if release is None:
            logger.warning(f".NET release {version} not found")
            return ""

        rid = runtime_identifier(os_name, arch)
        best_url = ""
        best_score = -1
        for item in self._component_files(release):
            score = self._score(item.get("name", ""), rid, version)
            if score > best_score:
                best_score, best_url = score, item.get("url", "")

        if not best_url:
            logger.warning(f"No .NET {self.current_component} {version} archive for {rid}")
        return best_url

    # ------------------------------------------------------------------
    # Layout and environment
    # ------------------------------------------------------------------

    def bin_dir(self, install_root: Path) -> Path:
        return Path(install_root)

    def component_home_var(self, component: str) -> str:
        # Only the SDK is looked up through DOTNET_ROOT
        return "DOTNET_ROOT" if component == "sdk" else ""

    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        env_vars = []
        home_var = self.component_home_var(self.current_component)
        if home_var:
            env_vars.append(EnvVar(home_var, str(install_root)))
        env_vars.append(EnvVar("PATH", str(install_root)))
        # Drops earlier entries of this component's tree from PATH
        env_vars.append(EnvVar("EXCLUDE_KEYWORDS", str(Path(install_root).parent)))
        return env_vars
