"""
Config command implementation.

Shows or changes the directory toolchains are installed into.
"""

import logging
from pathlib import Path

from svmkit.core.config_store import ConfigStore
from svmkit.core.filesystem import ensure_directory, is_empty_directory

logger = logging.getLogger(__name__)


def run(args, store: ConfigStore = None) -> int:
    """
    Run the config command.

    Args:
        args: Parsed command-line arguments
        store: Config store (default: at the svm home directory)

    Returns:
        Exit code (0 for success)
    """
    store = store or ConfigStore()

    if args.config_command == "set-install-dir":
        return _set_install_dir(store, args.directory)
    if args.config_command == "get-install-dir":
        print(store.get_install_root())
        return 0

    logger.error("Specify a config command: svm config <set-install-dir|get-install-dir>")
    return 1


def _set_install_dir(store: ConfigStore, directory: str) -> int:
    path = Path(directory).expanduser().absolute()
    existed = path.is_dir()
    ensure_directory(path)
    if existed and not is_empty_directory(path):
        logger.warning(f"{path} is not empty")

    store.set_install_root(path)
    print(f"Install directory set to {path}")
    return 0
