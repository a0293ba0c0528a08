"""
Core functionality for svmkit.

This package contains the foundational modules that other components depend on.
"""

from .config_store import ConfigStore, EnvVar, VersionRecord, get_default_home
from .exceptions import (
    SvmError,
    ConfigError,
    ConfigLockTimeout,
    InvalidVersionError,
    ResolutionError,
    CatalogFetchError,
    DownloadError,
    FilesystemError,
    ExtractionError,
    UnsupportedArchiveFormat,
    InsecureArchiveError,
    ActivationError,
    PrivilegeError,
    UnknownToolchainError,
    ToolchainNotInstalledError,
)
from .platform import PlatformInfo, detect_platform
from .settings import Settings, load_settings

__all__ = [
    # Config
    "ConfigStore",
    "EnvVar",
    "VersionRecord",
    "get_default_home",
    "Settings",
    "load_settings",
    # Platform
    "PlatformInfo",
    "detect_platform",
    # Exceptions
    "SvmError",
    "ConfigError",
    "ConfigLockTimeout",
    "InvalidVersionError",
    "ResolutionError",
    "CatalogFetchError",
    "DownloadError",
    "FilesystemError",
    "ExtractionError",
    "UnsupportedArchiveFormat",
    "InsecureArchiveError",
    "ActivationError",
    "PrivilegeError",
    "UnknownToolchainError",
    "ToolchainNotInstalledError",
]
