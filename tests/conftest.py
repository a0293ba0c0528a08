"""
Pytest configuration and shared fixtures for svmkit tests.
"""

import io
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, Generator, List, Optional

import pytest

from svmkit.core.config_store import ConfigStore, EnvVar
from svmkit.core.platform import PlatformInfo
from svmkit.providers.base import ProviderAdapter
from svmkit.toolchain.environment import EnvironmentApplier
from svmkit.toolchain.linking import LinkManager, LinkStrategy

FAKE_BASE_URL = "https://downloads.example.com/fake"
LINUX_X64 = PlatformInfo("linux", "x64")


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: fast tests without network access")
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Fake provider
# ============================================================================


class FakeProvider(ProviderAdapter):
    """
    In-memory provider for installer and activation tests.

    Archives are served from FAKE_BASE_URL; register bodies with `responses`.
    """

    name = "fake"
    default_base_url = FAKE_BASE_URL

    def __init__(
        self,
        versions: Optional[List[str]] = None,
        archives: Optional[Dict[str, str]] = None,
        subdir: str = "",
        **kwargs,
    ):
        kwargs.setdefault("platform", LINUX_X64)
        super().__init__(**kwargs)
        self.versions = list(versions or [])
        self.archives = dict(archives or {})
        self.subdir = subdir
        self.pre_installed: List[str] = []
        self.post_installed: List[str] = []

    def list_filtered(self) -> List[str]:
        return list(self.versions)

    def list_all(self) -> List[str]:
        return list(self.versions)

    def download_url(self, version: str, os_name: str, arch: str) -> str:
        return self.archives.get(version, "")

    def extract_subdir(self, version: str, archive_path: Path) -> str:
        return self.subdir.format(version=version)

    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        return [
            EnvVar("FAKE_HOME", str(install_root)),
            EnvVar("PATH", str(Path(install_root) / "bin")),
            EnvVar("EXCLUDE_KEYWORDS", "fake-old"),
        ]

    def pre_install(self, version: str):
        self.pre_installed.append(version)

    def post_install(self, version: str, install_root: Path):
        self.post_installed.append(version)


def build_tar_gz(files: Dict[str, str]) -> bytes:
    """Build a .tar.gz archive in memory from {member path: text}."""
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def build_zip(files: Dict[str, str]) -> bytes:
    """Build a .zip archive in memory from {member path: text}."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as zf:
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config_store(temp_dir: Path) -> ConfigStore:
    """Config store rooted in a temporary svm home."""
    return ConfigStore(home=temp_dir / "svm_home", lock_timeout=5)


@pytest.fixture
def fake_provider_class():
    """The FakeProvider class, for tests that build their own instances."""
    return FakeProvider


@pytest.fixture
def fake_provider() -> FakeProvider:
    """Fake provider with three versions, newest first."""
    return FakeProvider(
        versions=["1.2.0", "1.1.0", "1.0.0"],
        archives={
            v: f"{FAKE_BASE_URL}/fake-{v}-linux-x64.tar.gz" for v in ("1.2.0", "1.1.0", "1.0.0")
        },
        subdir="fake-{version}",
    )


@pytest.fixture
def fake_archive():
    """Build the .tar.gz body served for a fake version."""

    def _build(version: str) -> bytes:
        return build_tar_gz(
            {
                f"fake-{version}/bin/fake": f"#!/bin/sh\necho {version}\n",
                f"fake-{version}/VERSION": version,
            }
        )

    return _build


@pytest.fixture
def tar_gz_builder():
    return build_tar_gz


@pytest.fixture
def zip_builder():
    return build_zip


@pytest.fixture
def fake_environ() -> Dict[str, str]:
    """Process environment stand-in so tests never touch os.environ."""
    return {"PATH": "/usr/local/bin:/usr/bin"}


@pytest.fixture
def env_applier(fake_environ) -> EnvironmentApplier:
    return EnvironmentApplier(LINUX_X64, environ=fake_environ)


@pytest.fixture
def symlink_manager() -> LinkManager:
    return LinkManager(LinkStrategy.SYMLINK)
