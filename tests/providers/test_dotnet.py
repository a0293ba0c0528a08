"""
Unit tests for the .NET provider.
"""

from pathlib import Path

import pytest
import responses

from svmkit.core.exceptions import DownloadError
from svmkit.core.platform import PlatformInfo
from svmkit.providers.dotnet import DotNetProvider, runtime_identifier

BASE = "https://dotnetcli.blob.core.windows.net/dotnet/release-metadata"
INDEX_URL = f"{BASE}/releases-index.json"
DL = "https://download.visualstudio.microsoft.com/download/pr"

INDEX = {
    "releases-index": [
        {
            "channel-version": "9.0",
            "latest-release": "9.0.0-preview.1",
            "support-phase": "preview",
            "releases.json": f"{BASE}/9.0/releases.json",
        },
        {
            "channel-version": "8.0",
            "latest-release": "8.0.1",
            "support-phase": "active",
            "releases.json": f"{BASE}/8.0/releases.json",
        },
        {
            "channel-version": "6.0",
            "latest-release": "6.0.26",
            "support-phase": "active",
            "releases.json": f"{BASE}/6.0/releases.json",
        },
        {
            "channel-version": "5.0",
            "latest-release": "5.0.17",
            "support-phase": "eol",
            "releases.json": f"{BASE}/5.0/releases.json",
        },
    ]
}


def _files(*names):
    return [{"name": name, "url": f"{DL}/{name}"} for name in names]


RELEASES_8 = {
    "releases": [
        {
            "release-version": "8.0.1",
            "sdk": {
                "version": "8.0.101",
                "files": _files(
                    "dotnet-sdk-linux-arm64.tar.gz",
                    "dotnet-sdk-linux-x64.zip",
                    "dotnet-sdk-linux-x64.tar.gz",
                    "dotnet-sdk-osx-x64.pkg",
                    "dotnet-sdk-win-x64.exe",
                    "dotnet-sdk-win-x64.zip",
                ),
            },
            "runtime": {"files": _files("dotnet-runtime-linux-x64.tar.gz")},
            "aspnetcore-runtime": {"files": _files("aspnetcore-runtime-linux-x64.tar.gz")},
            "windowsdesktop": {
                "files": _files(
                    "windowsdesktop-runtime-win-x64.exe",
                    "windowsdesktop-runtime-win-x64.zip",
                )
            },
        },
        {"release-version": "8.0.0", "sdk": {"files": []}},
    ]
}
RELEASES_6 = {"releases": [{"release-version": "6.0.26"}]}

LINUX = PlatformInfo("linux", "x64")


def _register_catalog():
    responses.add(responses.GET, INDEX_URL, json=INDEX)
    responses.add(responses.GET, f"{BASE}/8.0/releases.json", json=RELEASES_8)
    responses.add(responses.GET, f"{BASE}/6.0/releases.json", json=RELEASES_6)
    responses.add(responses.GET, f"{BASE}/9.0/releases.json", status=500)


@pytest.mark.unit
class TestDotNetCatalog:
    """Test release metadata listing."""

    @responses.activate
    def test_list_filtered(self):
        """Test one latest release per supported channel, end-of-life dropped."""
        responses.add(responses.GET, INDEX_URL, json=INDEX)

        assert DotNetProvider(platform=LINUX).list_filtered() == [
            "8.0.1",
            "6.0.26",
            "9.0.0-preview.1",
        ]

    @responses.activate
    def test_list_all_skips_failing_channel(self):
        """Test a channel that cannot be fetched is skipped."""
        _register_catalog()

        assert DotNetProvider(platform=LINUX).list_all() == ["8.0.1", "8.0.0", "6.0.26"]


@pytest.mark.unit
class TestDotNetDownloadUrl:
    """Test per-component archive selection."""

    @responses.activate
    def test_sdk_linux_prefers_tar_gz(self):
        _register_catalog()

        url = DotNetProvider(platform=LINUX).download_url("8.0.1", "linux", "x64")

        assert url == f"{DL}/dotnet-sdk-linux-x64.tar.gz"

    @responses.activate
    def test_sdk_windows_prefers_zip(self):
        _register_catalog()

        url = DotNetProvider(platform=LINUX).download_url("8.0.1", "windows", "x64")

        assert url == f"{DL}/dotnet-sdk-win-x64.zip"

    @responses.activate
    def test_components(self):
        """Test each component picks from its own section."""
        _register_catalog()
        provider = DotNetProvider(platform=LINUX)

        provider.set_component("runtime")
        assert provider.download_url("8.0.1", "linux", "x64") == (
            f"{DL}/dotnet-runtime-linux-x64.tar.gz"
        )

        provider.set_component("asp-core")
        assert provider.download_url("8.0.1", "linux", "x64") == (
            f"{DL}/aspnetcore-runtime-linux-x64.tar.gz"
        )

        provider.set_component("desktop")
        assert provider.download_url("8.0.1", "windows", "x64") == (
            f"{DL}/windowsdesktop-runtime-win-x64.zip"
        )

    @responses.activate
    def test_installers_are_not_archives(self):
        """Test a platform with only a .pkg has no usable download."""
        _register_catalog()

        assert DotNetProvider(platform=LINUX).download_url("8.0.1", "macos", "x64") == ""

    @responses.activate
    def test_unknown_release(self):
        _register_catalog()

        assert DotNetProvider(platform=LINUX).download_url("8.0.99", "linux", "x64") == ""

    @responses.activate
    def test_metadata_failure(self):
        """Test metadata errors surface as DownloadError."""
        responses.add(responses.GET, INDEX_URL, status=503)

        with pytest.raises(DownloadError):
            DotNetProvider(platform=LINUX).download_url("8.0.1", "linux", "x64")


@pytest.mark.unit
class TestDotNetComponents:
    """Test component selection and environment."""

    def test_default_component(self):
        provider = DotNetProvider(platform=LINUX)
        assert provider.current_component == "sdk"
        assert provider.components() == ["sdk", "runtime", "asp-core", "desktop"]

    def test_component_home_var(self):
        provider = DotNetProvider(platform=LINUX)
        assert provider.component_home_var("sdk") == "DOTNET_ROOT"
        assert provider.component_home_var("runtime") == ""

    def test_unknown_component(self):
        with pytest.raises(ValueError, match="Unknown component"):
            DotNetProvider(platform=LINUX).set_component("workload")

    def test_sdk_env(self):
        root = Path("/svm/dotnet/sdk/current")
        env = DotNetProvider(platform=LINUX).configure_env("8.0.1", root)

        assert [(v.key, v.value) for v in env] == [
            ("DOTNET_ROOT", str(root)),
            ("PATH", str(root)),
            ("EXCLUDE_KEYWORDS", str(root.parent)),
        ]

    def test_runtime_env_has_no_root(self):
        provider = DotNetProvider(platform=LINUX)
        provider.set_component("runtime")

        keys = [v.key for v in provider.configure_env("8.0.1", Path("/svm/dotnet/runtime/current"))]

        assert keys == ["PATH", "EXCLUDE_KEYWORDS"]

    @pytest.mark.parametrize(
        "os_name,arch,expected",
        [
            ("linux", "x64", "linux-x64"),
            ("macos", "arm64", "osx-arm64"),
            ("windows", "x86", "win-x86"),
        ],
    )
    def test_runtime_identifier(self, os_name, arch, expected):
        assert runtime_identifier(os_name, arch) == expected
