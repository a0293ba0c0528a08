"""
Platform detection for svmkit.

Providers build download URLs from a normalized (os, arch) pair. Each ecosystem
spells these differently ("darwin" vs "mac", "amd64" vs "x64"), so detection
returns one canonical spelling and providers map it with `PlatformInfo.alias`.

Usage:
    from svmkit.core.platform import detect_platform

    info = detect_platform()
    print(info.platform_string())  # e.g. 'linux-x64'
"""

import functools
import platform
from dataclasses import dataclass
from typing import Dict


@dataclass(frozen=True)
class PlatformInfo:
    """
    Normalized platform information.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos')
        arch: CPU architecture ('x64', 'arm64', 'x86', 'arm')
    """

    os: str
    arch: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    @property
    def path_separator(self) -> str:
        """PATH list separator for this platform."""
        return ";" if self.is_windows else ":"

    def platform_string(self) -> str:
        """
        Get canonical platform string (e.g., 'linux-x64', 'macos-arm64').

        Example:
            >>> PlatformInfo('linux', 'x64').platform_string()
            'linux-x64'
        """
        return f"{self.os}-{self.arch}"

    def alias(self, os_map: Dict[str, str], arch_map: Dict[str, str]) -> "PlatformInfo":
        """
        Translate os/arch into an ecosystem's own naming.

        Values missing from a map pass through unchanged.

        Example:
            >>> PlatformInfo('macos', 'x64').alias({'macos': 'darwin'}, {'x64': 'amd64'})
            PlatformInfo(os='darwin', arch='amd64')
        """
        return PlatformInfo(
            os=os_map.get(self.os, self.os),
            arch=arch_map.get(self.arch, self.arch),
        )


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect the current platform.

    This function is cached - it only runs detection once per process.

    Raises:
        RuntimeError: If the operating system is not supported
    """
    return PlatformInfo(os=_detect_os(), arch=_detect_architecture())


def _detect_os() -> str:
    system = platform.system().lower()

    if system == "windows":
        return "windows"
    elif system == "linux":
        return "linux"
    elif system == "darwin":
        return "macos"
    else:
        raise RuntimeError(f"Unsupported operating system: {system}")


def _detect_architecture() -> str:
    machine = platform.machine().lower()

    # Normalize architecture names
    if machine in ("x86_64", "amd64", "x64"):
        return "x64"
    elif machine in ("aarch64", "arm64"):
        return "arm64"
    elif machine in ("i386", "i686", "x86"):
        return "x86"
    elif machine.startswith("arm"):
        return "arm"
    else:
        # Return original for unknown architectures
        return machine


def clear_platform_cache():
    """Clear the cached platform detection result (used by tests)."""
    detect_platform.cache_clear()


__all__ = ["PlatformInfo", "detect_platform", "clear_platform_cache"]
