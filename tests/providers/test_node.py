"""
Unit tests for the Node.js provider.
"""

from pathlib import Path

import pytest
import responses

from svmkit.core.config_store import ConfigStore, EnvVar
from svmkit.core.exceptions import CatalogFetchError
from svmkit.core.platform import PlatformInfo
from svmkit.core.settings import Settings
from svmkit.providers.node import NodeProvider
from svmkit.toolchain.installer import InstallOrchestrator

INDEX_URL = "https://nodejs.org/dist/index.json"
INDEX = [
    {"version": "v21.5.0", "lts": False},
    {"version": "v20.11.0", "lts": "Iron"},
    {"version": "v20.10.0", "lts": "Iron"},
    {"version": "v18.19.0", "lts": "Hydrogen"},
    {"version": "v8.17.0", "lts": "Carbon"},
]

LINUX = PlatformInfo("linux", "x64")
WINDOWS = PlatformInfo("windows", "x64")


@pytest.mark.unit
class TestNodeCatalog:
    """Test version listing."""

    @responses.activate
    def test_list_filtered(self):
        """Test one entry per major, newest first."""
        responses.add(responses.GET, INDEX_URL, json=INDEX)

        assert NodeProvider(platform=LINUX).list_filtered() == [
            "v21.5.0",
            "v20.11.0",
            "v18.19.0",
            "v8.17.0",
        ]

    @responses.activate
    def test_list_all(self):
        responses.add(responses.GET, INDEX_URL, json=INDEX)

        versions = NodeProvider(platform=LINUX).list_all()

        assert versions[:3] == ["v21.5.0", "v20.11.0", "v20.10.0"]
        assert len(versions) == 5

    @responses.activate
    def test_mirror(self):
        """Test a configured mirror replaces the base URL."""
        mirror = "https://npmmirror.com/mirrors/node"
        responses.add(responses.GET, f"{mirror}/index.json", json=INDEX[:1])
        provider = NodeProvider(settings=Settings(mirrors={"node": mirror + "/"}), platform=LINUX)

        assert provider.list_all() == ["v21.5.0"]
        assert provider.download_url("21.5.0", "linux", "x64").startswith(mirror + "/v21.5.0/")

    @responses.activate
    def test_unexpected_format(self):
        responses.add(responses.GET, INDEX_URL, json={"error": "nope"})
        with pytest.raises(CatalogFetchError):
            NodeProvider(platform=LINUX).list_all()


@pytest.mark.unit
class TestNodeLayout:
    """Test download URLs, layout and environment."""

    @pytest.mark.parametrize(
        "os_name,arch,expected",
        [
            ("linux", "x64", "v20.11.0/node-v20.11.0-linux-x64.tar.gz"),
            ("macos", "arm64", "v20.11.0/node-v20.11.0-darwin-arm64.tar.gz"),
            ("windows", "x64", "v20.11.0/node-v20.11.0-win-x64.zip"),
            ("linux", "arm", "v20.11.0/node-v20.11.0-linux-armv7l.tar.gz"),
        ],
    )
    def test_download_url(self, os_name, arch, expected):
        provider = NodeProvider(platform=LINUX)
        assert provider.download_url("v20.11.0", os_name, arch) == (
            f"https://nodejs.org/dist/{expected}"
        )

    def test_download_url_adds_prefix(self):
        """Test a bare version gets its 'v' back."""
        url = NodeProvider(platform=LINUX).download_url("20.11.0", "linux", "x64")
        assert url == "https://nodejs.org/dist/v20.11.0/node-v20.11.0-linux-x64.tar.gz"

    def test_extract_subdir(self):
        provider = NodeProvider(platform=LINUX)
        assert provider.extract_subdir("v20.11.0", Path("x.tar.gz")) == "node-v20.11.0-linux-x64"

    def test_env_unix(self):
        root = Path("/svm/node/current")
        assert NodeProvider(platform=LINUX).configure_env("v20.11.0", root) == [
            EnvVar("NODE_HOME", str(root)),
            EnvVar("PATH", str(root / "bin")),
            EnvVar("EXCLUDE_KEYWORDS", "node"),
        ]

    def test_bin_dir_windows(self):
        """Test node.exe sits at the top level on Windows."""
        root = Path("/svm/node/current")
        assert NodeProvider(platform=WINDOWS).bin_dir(root) == root


@pytest.mark.unit
class TestNodeInstall:
    """Test a full install through the orchestrator."""

    @responses.activate
    def test_install_major(self, tmp_path, tar_gz_builder):
        """Test 'v20' installs the newest 20.x and flattens the archive."""
        responses.add(responses.GET, INDEX_URL, json=INDEX)
        responses.add(
            responses.GET,
            "https://nodejs.org/dist/v20.11.0/node-v20.11.0-linux-x64.tar.gz",
            body=tar_gz_builder(
                {
                    "node-v20.11.0-linux-x64/bin/node": "#!/bin/sh\n",
                    "node-v20.11.0-linux-x64/LICENSE": "MIT",
                }
            ),
        )
        store = ConfigStore(home=tmp_path / "svm")

        result = InstallOrchestrator(NodeProvider(platform=LINUX), store).install("v20")

        assert result.version == "v20.11.0"
        assert result.install_dir == tmp_path / "svm" / "node" / "v20.11.0"
        assert (result.install_dir / "bin" / "node").is_file()
        assert store.installed_versions("node") == ["v20.11.0"]
