"""
Centralized exception hierarchy for svmkit.

Every error raised by the core surfaces to the command layer as one of the
types below, so the CLI can report it and exit non-zero.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class SvmError(Exception):
    """Base exception for all svmkit errors."""

    pass


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(SvmError):
    """Raised when the persisted config or the settings file is unusable."""

    pass


class ConfigLockTimeout(ConfigError):
    """Raised when the config lock cannot be acquired within timeout."""

    pass


# ============================================================================
# Version Exceptions
# ============================================================================


class InvalidVersionError(SvmError):
    """Raised when a version string cannot be parsed into numeric components."""

    def __init__(self, version: str):
        self.version = version
        super().__init__(f"Invalid version string: {version!r}")


class ResolutionError(SvmError):
    """Raised when no candidate satisfies a version request."""

    def __init__(self, requested: str, toolchain: str = "", reason: str = ""):
        self.requested = requested
        self.toolchain = toolchain
        msg = f"No matching version found for '{requested}'"
        if toolchain:
            msg = f"No matching {toolchain} version found for '{requested}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


# ============================================================================
# Network Exceptions
# ============================================================================


class CatalogFetchError(SvmError):
    """Raised when an upstream version catalog cannot be fetched or parsed."""

    pass


class DownloadError(SvmError):
    """Raised when an archive download fails for one version."""

    pass


# ============================================================================
# Filesystem Exceptions
# ============================================================================


class FilesystemError(SvmError):
    """Raised on permission problems, path collisions and failed moves."""

    pass


class ExtractionError(SvmError):
    """Raised when an archive is corrupt or cannot be extracted."""

    pass


class UnsupportedArchiveFormat(ExtractionError):
    """Raised when the archive kind has no extraction primitive."""

    pass


class InsecureArchiveError(ExtractionError):
    """Raised when an archive member would escape the destination directory."""

    pass


# ============================================================================
# Activation Exceptions
# ============================================================================


class ActivationError(SvmError):
    """Raised when the 'current' indirection cannot be created, even as a copy."""

    pass


class PrivilegeError(SvmError):
    """Raised when writing the machine-scope environment is refused."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        msg = (
            "Updating the system environment requires administrator privileges. "
            "Accept the elevation prompt or re-run from an elevated shell"
        )
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


# ============================================================================
# Toolchain Exceptions
# ============================================================================


class UnknownToolchainError(SvmError):
    """Raised when no provider is registered under a toolchain name."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown toolchain: {name}")


class ToolchainNotInstalledError(SvmError):
    """Raised when an operation needs an installed version that is missing."""

    def __init__(self, toolchain: str, version: str):
        self.toolchain = toolchain
        self.version = version
        super().__init__(f"{toolchain} {version} is not installed")


__all__ = [
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
