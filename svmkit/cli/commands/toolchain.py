"""
Toolchain command implementation.

Handles `svm <toolchain> <action>` for every toolchain, and
`svm dotnet <component> <action>` for .NET.
"""

import logging

from svmkit.core.config_store import ConfigStore
from svmkit.core.download import DownloadProgress, format_progress
from svmkit.core.settings import SETTINGS_FILENAME, load_settings
from svmkit.providers import get_provider
from svmkit.toolchain.manager import ToolchainManager

logger = logging.getLogger(__name__)


def _log_progress(progress: DownloadProgress):
    logger.debug(format_progress(progress))


def create_manager(args, store: ConfigStore = None) -> ToolchainManager:
    """Build the manager for the toolchain (and component) named on the command line."""
    store = store or ConfigStore()
    settings = load_settings(store.home / SETTINGS_FILENAME)
    provider = get_provider(args.command, settings)
    return ToolchainManager(
        provider,
        store,
        component=getattr(args, "component", None),
        progress_callback=_log_progress,
    )


def run(args) -> int:
    """
    Run a toolchain action.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    if args.command == "dotnet" and not getattr(args, "component", None):
        logger.error("Specify a .NET component: svm dotnet <sdk|runtime|asp-core|desktop> ...")
        return 1
    if not getattr(args, "action", None):
        logger.error(f"Specify an action: svm {args.command} <list|install|remove|use|current>")
        return 1

    manager = create_manager(args)
    handlers = {
        "list": _run_list,
        "install": _run_install,
        "remove": _run_remove,
        "use": _run_use,
        "current": _run_current,
    }
    return handlers[args.action](manager, args)


def _run_list(manager: ToolchainManager, args) -> int:
    if args.installed:
        listings = manager.list_installed()
        if not listings:
            print(f"No {manager.display_name} versions installed")
            return 0
    else:
        logger.info(f"Fetching {manager.display_name} versions...")
        listings = manager.list_versions(all=args.all)

    for item in listings:
        marker = ">" if item.active else ("*" if item.installed else " ")
        print(f"{marker} {item.version}")
    return 0


def _run_install(manager: ToolchainManager, args) -> int:
    result = manager.install(args.version)
    source = "from cache" if result.was_cached else f"in {result.download_time:.1f}s"
    print(f"Installed {manager.display_name} {result.version} ({source})")
    if result.skipped:
        print(f"  Skipped unavailable versions: {', '.join(result.skipped)}")
    print(f"  Run 'svm {manager.display_name} use {result.version}' to activate it")
    return 0


def _run_remove(manager: ToolchainManager, args) -> int:
    install_dir = manager.remove(args.version)
    print(f"Removed {manager.display_name} {args.version} ({install_dir})")
    return 0


def _run_use(manager: ToolchainManager, args) -> int:
    result = manager.use(args.version)
    print(f"Now using {manager.display_name} {result.version}")
    logger.debug(f"{result.link_path} -> {result.install_dir} ({result.strategy.value})")
    return 0


def _run_current(manager: ToolchainManager, args) -> int:
    current = manager.current()
    if current is None:
        print(f"No {manager.display_name} version is active")
        print(f"  Run 'svm {manager.display_name} use VERSION' to activate one")
        return 0

    version, install_dir = current
    print(f"{manager.display_name} {version}")
    if install_dir is not None:
        print(f"  {install_dir}")
    else:
        logger.warning(f"Install directory of {version} is missing")
    return 0
