"""
Toolchain installation.

This module drives one install from a version request to a ready directory:

    resolve -> prepare directory -> obtain archive -> extract -> flatten -> post-install

Archives come from the cache when possible and are downloaded otherwise. When
a download fails, the half-prepared version is discarded and the next older
catalog entry is installed instead, until the catalog is exhausted.
"""

import logging
import shutil
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple

from svmkit.core.config_store import ConfigStore
from svmkit.core.download import DownloadProgress, download_file
from svmkit.core.exceptions import (
    DownloadError,
    ExtractionError,
    FilesystemError,
    ResolutionError,
    UnsupportedArchiveFormat,
)
from svmkit.core.filesystem import (
    ensure_directory,
    extract_tar_gz,
    extract_zip,
    flatten_directory,
    remove_path,
    safe_rmtree,
)
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import ArchiveKind, ProviderAdapter
from svmkit.toolchain.cache import CacheStore
from svmkit.toolchain.resolver import next_older_version, resolve_version

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of an install."""

    version: str
    """Version actually installed (may be older than requested after fallback)"""

    install_dir: Path
    """Directory holding the installed toolchain"""

    was_cached: bool
    """Whether the archive came from the cache (no download needed)"""

    download_time: float = 0.0
    """Time spent downloading in seconds"""

    extraction_time: float = 0.0
    """Time spent extracting and post-processing in seconds"""

    skipped: List[str] = field(default_factory=list)
    """Newer versions abandoned because their download failed"""


class InstallOrchestrator:
    """
    Installs versions of one toolchain (or one toolchain component).

    Example:
        >>> installer = InstallOrchestrator(GoProvider(), ConfigStore())
        >>> result = installer.install("1.21")
        >>> print(f"Installed {result.version} at {result.install_dir}")
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        store: ConfigStore,
        component: Optional[str] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    ):
        """
        Initialize installer.

        Args:
            provider: Ecosystem adapter
            store: Persistent config store
            component: Component name for multi-component toolchains
            progress_callback: Optional callback for download progress
        """
        self.provider = provider
        self.store = store
        self.component = component
        self.progress_callback = progress_callback
        self.cache = CacheStore(store, component)

    @property
    def toolchain(self) -> str:
        return self.provider.name

    def toolchain_root(self) -> Path:
        """Directory holding every version (and the 'current' link)."""
        root = self.store.get_install_root() / self.toolchain
        if self.component:
            root = root / self.component
        return root

    def version_dir(self, version: str) -> Path:
        return self.toolchain_root() / version

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    def candidates(self) -> List[str]:
        """Filtered catalog, newest first."""
        return sort_versions_desc(self.provider.list_filtered())

    def resolve(self, requested: str, candidates: Sequence[str]) -> str:
        """
        Resolve a request against a newest-first candidate list.

        Raises:
            ResolutionError: If the list is empty
        """
        handler = self.provider.prefix_handler
        version, found = resolve_version(
            handler.add(requested), candidates, handler.strip_prefix()
        )
        if not found:
            raise ResolutionError(requested, self.toolchain, "no versions available")
        if version != handler.add(requested):
            logger.info(f"Resolved {self.toolchain} '{requested}' to {version}")
        return version

    # ------------------------------------------------------------------
    # Install
    # ------------------------------------------------------------------

    def install(self, requested: str) -> InstallResult:
        """
        Install the best match for a version request.

        Args:
            requested: Version as typed by the user ("20", "1.21.5", "latest")

        Returns:
            InstallResult describing the version actually installed

        Raises:
            ResolutionError: If nothing matches or every candidate failed to download
            ExtractionError: If an archive is corrupt or of an unknown kind
            FilesystemError: If the install directory cannot be prepared
        """
        self.provider.pre_install(self.provider.prefix_handler.add(requested))

        candidates = self.candidates()
        logger.debug(f"Found {len(candidates)} {self.toolchain} versions")
        version = self.resolve(requested, candidates)

        skipped = []
        while True:
            try:
                result = self._install_version(version)
            except DownloadError as e:
                logger.warning(f"{self.toolchain} {version} could not be downloaded: {e}")
                skipped.append(version)

                version, found = next_older_version(version, candidates)
                if not found:
                    raise ResolutionError(
                        requested, self.toolchain, "no installable version found"
                    ) from e
                logger.info(f"Trying next available version: {version}")
                continue

            result.skipped = skipped
            return result

    def _install_version(self, version: str) -> InstallResult:
        """
        Run prepare -> obtain -> extract -> flatten -> post-install for one version.

        A failed attempt leaves no directory or record that looks installed.
        A directory that already held an install before this attempt is kept.
        """
        version_dir, created = self.prepare_install_dir(version)

        download_start = time.time()
        try:
            archive_path, was_cached = self.obtain_archive(version)
        except DownloadError:
            if created:
                self._discard(version, version_dir)
            raise
        download_time = time.time() - download_start

        extraction_start = time.time()
        extracted = False
        try:
            self.extract(version, archive_path, version_dir)
            extracted = True
            self.provider.post_install(version, version_dir)
        except Exception as e:
            with self.store.transaction():
                if not extracted and isinstance(e, ExtractionError):
                    self._drop_archive(version, archive_path)
                self._abandon(version, version_dir, created)
            raise
        extraction_time = time.time() - extraction_start

        logger.info(f"{self.toolchain} {version} installed at {version_dir}")
        return InstallResult(
            version=version,
            install_dir=version_dir,
            was_cached=was_cached,
            download_time=download_time,
            extraction_time=extraction_time,
        )

    def prepare_install_dir(self, version: str) -> Tuple[Path, bool]:
        """
        Get an install directory for a version, reusing a recorded one.

        A recorded directory that still exists is kept as-is. Otherwise the
        standard directory is created empty and recorded.

        Returns:
            (install directory, True if this call created it)
        """
        record = self.store.get_version_info(self.toolchain, version, self.component)
        if record is not None and record.install_dir:
            existing = Path(record.install_dir)
            if existing.is_dir():
                logger.info(f"Reusing install directory {existing}")
                return existing, False

        version_dir = self.version_dir(version)
        if version_dir.exists():
            logger.debug(f"Clearing stale files in {version_dir}")
            for entry in version_dir.iterdir():
                remove_path(entry)
        ensure_directory(version_dir)

        self.store.update_version_info(
            self.toolchain, version, self.component, install_dir=str(version_dir)
        )
        return version_dir, True

    def obtain_archive(self, version: str):
        """
        Get the archive for a version from the cache or by downloading it.

        Returns:
            (archive path, was_cached)

        Raises:
            DownloadError: If there is no URL for this platform or the transfer fails
        """
        cached, hit = self.cache.get(self.toolchain, version)
        if hit:
            return cached, True

        platform = self.provider.platform
        url = self.provider.download_url(version, platform.os, platform.arch)
        if not url:
            raise DownloadError(
                f"No {self.toolchain} {version} download for {platform.platform_string()}"
            )

        cache_dir = self.store.get_cache_dir() / self.toolchain
        destination = cache_dir / url.rstrip("/").split("/")[-1].split("?")[0]
        download_file(
            url,
            destination,
            progress_callback=self.progress_callback,
            timeout=self.provider.settings.download.timeout,
            chunk_size=self.provider.settings.download.chunk_size,
        )
        self.cache.put(self.toolchain, version, destination)
        return destination, False

    def extract(self, version: str, archive_path: Path, version_dir: Path):
        """
        Unpack an archive into the version directory and flatten its layout.

        Raises:
            UnsupportedArchiveFormat: If the archive kind cannot be handled
        """
        kind = self.provider.archive_kind()
        if kind == ArchiveKind.AUTO:
            kind = self.provider.archive_kind_for_file(archive_path)

        logger.info(f"Extracting {archive_path.name}...")
        if kind == ArchiveKind.ZIP:
            extract_zip(archive_path, version_dir)
        elif kind == ArchiveKind.TAR_GZ:
            extract_tar_gz(archive_path, version_dir)
        elif kind == ArchiveKind.PLATFORM_INSTALLER:
            target = version_dir / archive_path.name
            if archive_path.parent.resolve() != version_dir.resolve():
                try:
                    shutil.copy2(archive_path, target)
                except OSError as e:
                    raise FilesystemError(f"Failed to copy installer: {e}") from e
        else:
            raise UnsupportedArchiveFormat(
                f"Unsupported archive kind for {archive_path.name}"
            )

        subdir = self.provider.extract_subdir(version, archive_path)
        if subdir:
            if (version_dir / subdir).is_dir():
                flatten_directory(version_dir, subdir)
            else:
                logger.debug(f"No '{subdir}' directory to flatten in {version_dir}")

    def _discard(self, version: str, version_dir: Path):
        """Delete a failed version's directory and record."""
        if version_dir.exists():
            logger.info(f"Removing failed install directory {version_dir}")
            safe_rmtree(version_dir)
        self.store.remove_version_info(self.toolchain, version, self.component)

    def _abandon(self, version: str, version_dir: Path, created: bool):
        """Undo a failed extraction or post-install, keeping any cached archive."""
        if not created:
            logger.warning(f"Keeping existing {self.toolchain} {version} at {version_dir}")
            return
        if version_dir.exists():
            logger.info(f"Removing failed install directory {version_dir}")
            safe_rmtree(version_dir)
        self.store.update_version_info(
            self.toolchain, version, self.component, install_dir=""
        )

    def _drop_archive(self, version: str, archive_path: Path):
        """Forget an archive that could not be extracted so it is downloaded again."""
        logger.info(f"Dropping unusable archive {archive_path}")
        remove_path(archive_path)
        self.store.update_version_info(
            self.toolchain, version, self.component, cache_file_path=""
        )


__all__ = ["InstallOrchestrator", "InstallResult"]
