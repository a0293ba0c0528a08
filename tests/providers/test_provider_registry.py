"""
Unit tests for provider lookup.
"""

import pytest

from svmkit.core.exceptions import UnknownToolchainError
from svmkit.core.platform import PlatformInfo
from svmkit.core.settings import Settings
from svmkit.providers import (
    DotNetProvider,
    GoProvider,
    HasComponents,
    available_toolchains,
    get_provider,
)


@pytest.mark.unit
class TestGetProvider:
    """Test get_provider function."""

    def test_available(self):
        assert available_toolchains() == ["node", "go", "java", "python", "dotnet"]

    def test_builds_provider(self):
        """Test settings and platform are passed through."""
        settings = Settings(mirrors={"go": "https://golang.google.cn/dl"})
        platform = PlatformInfo("macos", "arm64")

        provider = get_provider("go", settings=settings, platform=platform)

        assert isinstance(provider, GoProvider)
        assert provider.settings is settings
        assert provider.platform == platform
        assert provider.base_url == "https://golang.google.cn/dl"

    def test_only_dotnet_has_components(self):
        platform = PlatformInfo("linux", "x64")
        with_components = [
            name
            for name in available_toolchains()
            if isinstance(get_provider(name, platform=platform), HasComponents)
        ]
        assert with_components == ["dotnet"]
        assert isinstance(get_provider("dotnet", platform=platform), DotNetProvider)

    def test_unknown(self):
        with pytest.raises(UnknownToolchainError):
            get_provider("rust")
