"""
Unit tests for the downloaded-archive cache.
"""

import pytest

from svmkit.toolchain.cache import CacheStore


@pytest.mark.unit
class TestCacheStore:
    """Test CacheStore get/put."""

    def test_miss_without_record(self, config_store):
        assert CacheStore(config_store).get("go", "1.21.5") == (None, False)

    def test_hit(self, config_store, tmp_path):
        """Test a recorded archive that exists is a hit."""
        archive = tmp_path / "go1.21.5.linux-amd64.tar.gz"
        archive.write_bytes(b"data")
        cache = CacheStore(config_store)

        cache.put("go", "1.21.5", archive)

        assert cache.get("go", "1.21.5") == (archive, True)

    def test_missing_file_is_miss(self, config_store, tmp_path):
        """Test a recorded path that was deleted is a miss."""
        cache = CacheStore(config_store)
        cache.put("go", "1.21.5", tmp_path / "gone.tar.gz")

        assert cache.get("go", "1.21.5") == (None, False)

    def test_installer_is_miss(self, config_store, tmp_path):
        """Test platform installers are never reused."""
        installer = tmp_path / "dotnet-sdk-8.0.101-osx-x64.pkg"
        installer.write_bytes(b"data")
        cache = CacheStore(config_store)
        cache.put("dotnet", "8.0.101", installer)

        assert cache.get("dotnet", "8.0.101") == (None, False)

    def test_put_keeps_install_dir(self, config_store, tmp_path):
        """Test recording an archive does not touch the install location."""
        config_store.update_version_info("go", "1.21.5", install_dir="/svm/go/1.21.5")

        CacheStore(config_store).put("go", "1.21.5", tmp_path / "a.tar.gz")

        record = config_store.get_version_info("go", "1.21.5")
        assert record.install_dir == "/svm/go/1.21.5"
        assert record.cache_file_path == str(tmp_path / "a.tar.gz")

    def test_component_scope(self, config_store, tmp_path):
        """Test component caches do not leak into each other."""
        archive = tmp_path / "dotnet-sdk.tar.gz"
        archive.write_bytes(b"data")

        CacheStore(config_store, component="sdk").put("dotnet", "8.0.101", archive)

        assert CacheStore(config_store, component="sdk").get("dotnet", "8.0.101")[1]
        assert not CacheStore(config_store, component="runtime").get("dotnet", "8.0.101")[1]
