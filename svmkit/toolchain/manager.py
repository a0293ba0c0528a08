"""
Per-toolchain facade used by the CLI.

ToolchainManager wires a provider to the installer, the activation manager and
the config store, and implements the list, install, remove, use and current
operations for one toolchain (or one component of a multi-component
toolchain).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from svmkit.core.config_store import ConfigStore
from svmkit.core.download import DownloadProgress
from svmkit.core.exceptions import ToolchainNotInstalledError
from svmkit.core.filesystem import safe_rmtree
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import HasComponents, ProviderAdapter
from svmkit.toolchain.activation import ActivationManager, ActivationResult
from svmkit.toolchain.environment import EnvironmentApplier
from svmkit.toolchain.installer import InstallOrchestrator, InstallResult
from svmkit.toolchain.linking import LinkManager, default_link_strategy

logger = logging.getLogger(__name__)


@dataclass
class VersionListing:
    """One row of a version listing."""

    version: str
    installed: bool = False
    active: bool = False


class ToolchainManager:
    """
    List, install, remove and switch versions of one toolchain.

    Example:
        >>> manager = ToolchainManager(GoProvider(), ConfigStore())
        >>> manager.use("1.21")
        >>> manager.current()
        ('1.21.5', PosixPath('/home/me/.svm/go/1.21.5'))
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        store: ConfigStore,
        component: Optional[str] = None,
        progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
        link_manager: Optional[LinkManager] = None,
        applier: Optional[EnvironmentApplier] = None,
    ):
        """
        Initialize manager.

        Args:
            provider: Ecosystem adapter
            store: Persistent config store
            component: Component to operate on (multi-component toolchains only;
                defaults to the provider's first component)
            progress_callback: Optional callback for download progress
            link_manager: 'current' link manager (default: per settings/platform)
            applier: Environment applier (default: per platform)

        Raises:
            ValueError: If a component is given for a toolchain without
                components, or the component is unknown
        """
        if isinstance(provider, HasComponents):
            provider.set_component(
                component or provider.current_component or provider.components()[0]
            )
            component = provider.current_component
        elif component:
            raise ValueError(f"{provider.name} has no components")

        self.provider = provider
        self.store = store
        self.component = component

        if link_manager is None:
            link_manager = LinkManager(
                default_link_strategy(provider.platform, provider.settings.link_strategy)
            )

        self.installer = InstallOrchestrator(
            provider, store, component, progress_callback=progress_callback
        )
        self.activation = ActivationManager(
            provider,
            store,
            component,
            installer=self.installer,
            link_manager=link_manager,
            applier=applier or EnvironmentApplier(provider.platform),
        )

    @property
    def toolchain(self) -> str:
        return self.provider.name

    @property
    def display_name(self) -> str:
        if self.component:
            return f"{self.toolchain} {self.component}"
        return self.toolchain

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_versions(self, all: bool = False) -> List[VersionListing]:
        """
        List catalog versions, marking installed and active ones.

        Args:
            all: List every published version instead of the newest per line

        Raises:
            CatalogFetchError: If the upstream catalog cannot be read
        """
        catalog = self.provider.list_all() if all else self.provider.list_filtered()
        installed = set(self.store.installed_versions(self.toolchain, self.component))
        active = self.store.get_current_version(self.toolchain, self.component)
        return [
            VersionListing(version, version in installed, version == active)
            for version in sort_versions_desc(catalog)
        ]

    def list_installed(self) -> List[VersionListing]:
        """List locally installed versions, newest first."""
        active = self.store.get_current_version(self.toolchain, self.component)
        installed = self.store.installed_versions(self.toolchain, self.component)
        return [
            VersionListing(version, True, version == active)
            for version in sort_versions_desc(installed)
        ]

    # ------------------------------------------------------------------
    # Install / remove
    # ------------------------------------------------------------------

    def install(self, version: str) -> InstallResult:
        """Install a version without changing the active one."""
        return self.installer.install(version)

    def remove(self, version: str) -> Path:
        """
        Remove an installed version.

        The archive cache entry is kept so a reinstall needs no download.
        Removing the active version deactivates it first.

        Returns:
            The deleted install directory

        Raises:
            ToolchainNotInstalledError: If the version is not installed
        """
        version = self.provider.prefix_handler.add(version)
        with self.store.transaction():
            record = self.store.get_version_info(self.toolchain, version, self.component)
            if record is None or not record.is_installed:
                raise ToolchainNotInstalledError(self.display_name, version)

            if self.store.get_current_version(self.toolchain, self.component) == version:
                logger.info(f"{version} is the active version, deactivating it")
                self.activation.deactivate()

            install_dir = Path(record.install_dir)
            safe_rmtree(install_dir)
            self.store.update_version_info(
                self.toolchain, version, self.component, install_dir=""
            )
        logger.info(f"Removed {self.display_name} {version}")
        return install_dir

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def use(self, version: str) -> ActivationResult:
        """Activate a version, installing it first when needed."""
        return self.activation.activate(version)

    def current(self) -> Optional[Tuple[str, Optional[Path]]]:
        """
        Get the active version and its install directory.

        Returns:
            (version, install dir or None if it went missing), or None if no
            version is active
        """
        version = self.store.get_current_version(self.toolchain, self.component)
        if not version:
            return None
        link_path = self.activation.current_link()
        if not self.activation.link_manager.is_valid(link_path):
            logger.warning(
                f"The '{link_path.name}' link of {self.display_name} is missing or broken, "
                f"run 'use {version}' to repair it"
            )
        return version, self.activation.locate(version)


__all__ = ["ToolchainManager", "VersionListing"]
