"""
Toolchain providers.

Each provider adapts one ecosystem (Node.js, Go, Java, Python, .NET) to the
ProviderAdapter interface. Use get_provider() to build one by name.
"""

from typing import Dict, List, Optional, Type

from svmkit.core.exceptions import UnknownToolchainError
from svmkit.core.platform import PlatformInfo
from svmkit.core.settings import Settings

from .base import ArchiveKind, HasComponents, ProviderAdapter
from .dotnet import DotNetProvider
from .go import GoProvider
from .java import JavaProvider
from .node import NodeProvider
from .python import PythonProvider

PROVIDERS: Dict[str, Type[ProviderAdapter]] = {
    NodeProvider.name: NodeProvider,
    GoProvider.name: GoProvider,
    JavaProvider.name: JavaProvider,
    PythonProvider.name: PythonProvider,
    DotNetProvider.name: DotNetProvider,
}


def available_toolchains() -> List[str]:
    """Get the names of all supported toolchains."""
    return list(PROVIDERS)


def get_provider(
    name: str,
    settings: Optional[Settings] = None,
    platform: Optional[PlatformInfo] = None,
) -> ProviderAdapter:
    """
    Create the provider for a toolchain.

    Raises:
        UnknownToolchainError: If no provider is registered under that name
    """
    try:
        provider_class = PROVIDERS[name]
    except KeyError:
        raise UnknownToolchainError(name) from None
    return provider_class(settings=settings, platform=platform)


__all__ = [
    "ArchiveKind",
    "HasComponents",
    "ProviderAdapter",
    "DotNetProvider",
    "GoProvider",
    "JavaProvider",
    "NodeProvider",
    "PythonProvider",
    "PROVIDERS",
    "available_toolchains",
    "get_provider",
]
