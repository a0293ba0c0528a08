"""
Active version switching.

Activation points `<root>/current` at an installed version directory, writes a
`.version` marker through it, applies the provider's environment and records
the binding. It always runs every step, so re-activating the active version
repairs a damaged link or a stale environment.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from svmkit.core.config_store import ConfigStore
from svmkit.core.exceptions import ActivationError
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import ProviderAdapter
from svmkit.toolchain.environment import EnvironmentApplier
from svmkit.toolchain.installer import InstallOrchestrator
from svmkit.toolchain.linking import LinkManager, LinkStrategy

logger = logging.getLogger(__name__)

CURRENT_LINK_NAME = "current"
MARKER_FILENAME = ".version"


@dataclass
class ActivationResult:
    """Result of an activation."""

    version: str
    install_dir: Path
    link_path: Path
    strategy: LinkStrategy
    installed: bool  # True if the version had to be installed first


class ActivationManager:
    """
    Maintains the 'current' link of one toolchain (or component).

    Example:
        >>> manager = ActivationManager(NodeProvider(), ConfigStore())
        >>> result = manager.activate("20")
        >>> print(f"Now using {result.version}")
    """

    def __init__(
        self,
        provider: ProviderAdapter,
        store: ConfigStore,
        component: Optional[str] = None,
        installer: Optional[InstallOrchestrator] = None,
        link_manager: Optional[LinkManager] = None,
        applier: Optional[EnvironmentApplier] = None,
    ):
        self.provider = provider
        self.store = store
        self.component = component
        self.installer = installer or InstallOrchestrator(provider, store, component)
        self.link_manager = link_manager or LinkManager()
        self.applier = applier or EnvironmentApplier(provider.platform)

    @property
    def toolchain(self) -> str:
        return self.provider.name

    def current_link(self) -> Path:
        return self.installer.toolchain_root() / CURRENT_LINK_NAME

    def current_version(self) -> str:
        """Get the active version, or '' if none."""
        return self.store.get_current_version(self.toolchain, self.component)

    # ------------------------------------------------------------------
    # Locating installs
    # ------------------------------------------------------------------

    def _layout_candidates(self, version: str) -> List[Path]:
        record = self.store.get_version_info(self.toolchain, version, self.component)
        paths = []
        if record is not None and record.install_dir:
            paths.append(Path(record.install_dir))

        toolchain_dir = self.store.get_install_root() / self.toolchain
        paths.append(toolchain_dir / version)
        if self.component:
            paths.append(toolchain_dir / self.component / version)
        return paths

    def locate(self, version: str) -> Optional[Path]:
        """
        Find the install directory of a version.

        Tries the recorded directory first, then the flat and per-component
        layouts.
        """
        for path in self._layout_candidates(version):
            if path.is_dir() and path.name != CURRENT_LINK_NAME:
                return path
        return None

    def match_installed(self, requested: str) -> Optional[str]:
        """
        Match a request against installed versions without any network access.

        Accepts an exact match or, for a partial request such as "20" or
        "1.21", the newest installed version in that release line.
        """
        handler = self.provider.prefix_handler
        installed = sort_versions_desc(
            self.store.installed_versions(self.toolchain, self.component)
        )
        wanted = handler.remove(handler.add(requested))
        for version in installed:
            bare = handler.remove(version)
            if bare == wanted or bare.startswith(wanted + "."):
                if self.locate(version) is not None:
                    return version
        return None

    # ------------------------------------------------------------------
    # Activation
    # ------------------------------------------------------------------

    def activate(self, requested: str) -> ActivationResult:
        """
        Make a version the active one, installing it first if needed.

        Raises:
            ActivationError: If the version cannot be located or linked
            PrivilegeError: If the Windows system environment cannot be written
        """
        version = self.provider.prefix_handler.add(requested)
        install_dir = self.locate(version)
        installed = False

        if install_dir is None:
            matched = self.match_installed(requested)
            if matched is not None:
                version = matched
                install_dir = self.locate(version)

        if install_dir is None:
            logger.info(f"{self.toolchain} {version} is not installed, installing...")
            result = self.installer.install(requested)
            version = result.version
            installed = True
            install_dir = self.locate(version)
            if install_dir is None:
                raise ActivationError(
                    f"{self.toolchain} {version} was installed but cannot be found"
                )

        link_path = self.current_link()
        strategy = self.link_manager.create(link_path, install_dir)
        self._write_marker(link_path, version)

        env_vars = self.provider.configure_env(version, link_path)
        self.applier.apply(
            self.toolchain,
            version,
            env_vars,
            default_bin=self.provider.bin_dir(link_path),
        )
        self.store.set_active(self.toolchain, version, env_vars, self.component)

        logger.debug(f"Activated {self.toolchain} {version} from {install_dir}")
        return ActivationResult(
            version=version,
            install_dir=install_dir,
            link_path=link_path,
            strategy=strategy,
            installed=installed,
        )

    def _write_marker(self, link_path: Path, version: str):
        marker = link_path / MARKER_FILENAME
        try:
            marker.write_text(version + "\n", encoding="utf-8")
        except OSError as e:
            raise ActivationError(f"Failed to write {marker}: {e}") from e

    def deactivate(self):
        """
        Clear the active binding, its environment and the 'current' link.

        The binding is cleared before the link is removed.
        """
        with self.store.transaction():
            env_vars = self.store.get_env_vars(self.toolchain, self.component)
            self.store.clear_active(self.toolchain, self.component)
        self.applier.clear(env_vars)
        self.link_manager.remove(self.current_link())
        logger.debug(f"Deactivated {self.toolchain}")


__all__ = ["ActivationManager", "ActivationResult", "CURRENT_LINK_NAME", "MARKER_FILENAME"]
