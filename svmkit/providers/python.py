"""
Python provider.

The catalog is scraped from the python.org FTP index. Windows installs the
embeddable zip distribution; Unix-like systems download the source tarball
and build it into the version directory.
"""

import logging
import os
import re
import subprocess
from pathlib import Path
from typing import List

from svmkit.core.config_store import EnvVar
from svmkit.core.download import fetch_text
from svmkit.core.exceptions import CatalogFetchError, ExtractionError
from svmkit.core.filesystem import safe_rmtree
from svmkit.core.version import sort_versions_desc
from svmkit.providers.base import ProviderAdapter
from svmkit.toolchain.resolver import filter_newest_per_line

logger = logging.getLogger(__name__)

VERSION_LINK_PATTERNS = [
    re.compile(r'href="(\d+\.\d+\.\d+)/"'),
    re.compile(r">(\d+\.\d+\.\d+)/<"),
]
EMBED_ARCH = {"x64": "amd64", "arm64": "arm64", "x86": "win32"}


class PythonProvider(ProviderAdapter):
    """CPython releases from python.org."""

    name = "python"
    default_base_url = "https://www.python.org/ftp/python"

    def _fetch_versions(self) -> List[str]:
        html = fetch_text(f"{self.base_url}/", timeout=self.timeout)
        for pattern in VERSION_LINK_PATTERNS:
            found = pattern.findall(html)
            if found:
                return sort_versions_desc(set(found))
        raise CatalogFetchError(f"No Python versions found at {self.base_url}/")

    def list_all(self) -> List[str]:
        return self._fetch_versions()

    def list_filtered(self) -> List[str]:
        """Newest patch release of each minor version."""
        return filter_newest_per_line(self._fetch_versions(), 2)

    def download_url(self, version: str, os_name: str, arch: str) -> str:
        if os_name == "windows":
            return (
                f"{self.base_url}/{version}/"
                f"python-{version}-embed-{EMBED_ARCH.get(arch, arch)}.zip"
            )
        return f"{self.base_url}/{version}/Python-{version}.tgz"

    def bin_dir(self, install_root: Path) -> Path:
        if self.platform.is_windows:
            return Path(install_root)
        return Path(install_root) / "bin"

    def configure_env(self, version: str, install_root: Path) -> List[EnvVar]:
        if self.platform.is_windows:
            path = self.platform.path_separator.join(
                [str(install_root), str(Path(install_root) / "Scripts")]
            )
        else:
            path = str(self.bin_dir(install_root))
        return [
            EnvVar("PYTHONHOME", str(install_root)),
            EnvVar("PATH", path),
            EnvVar("EXCLUDE_KEYWORDS", "python"),
        ]

    def post_install(self, version: str, install_root: Path):
        install_root = Path(install_root)
        if self.platform.is_windows:
            self._enable_site(install_root)
        else:
            self._build_from_source(version, install_root)

    def _enable_site(self, install_root: Path):
        """Uncomment 'import site' in the embeddable distribution's ._pth file."""
        for pth in install_root.glob("python*._pth"):
            content = pth.read_text(encoding="utf-8")
            if "#import site" in content:
                pth.write_text(content.replace("#import site", "import site", 1), encoding="utf-8")
                logger.debug(f"Enabled site-packages in {pth.name}")

    def _build_from_source(self, version: str, install_root: Path):
        """
        Run configure/make/make install with the version directory as prefix.

        Raises:
            ExtractionError: If the source tree is missing or the build fails
        """
        source_dir = install_root / f"Python-{version}"
        if not source_dir.is_dir():
            raise ExtractionError(f"Python source tree not found: {source_dir}")

        jobs = str(os.cpu_count() or 1)
        steps = [
            ["./configure", f"--prefix={install_root}"],
            ["make", f"-j{jobs}"],
            ["make", "install"],
        ]
        logger.info(f"Building Python {version} from source, this can take a while...")
        for step in steps:
            logger.debug(f"Running {' '.join(step)}")
            try:
                result = subprocess.run(
                    step, cwd=source_dir, capture_output=True, text=True
                )
            except OSError as e:
                raise ExtractionError(f"Cannot run {step[0]}: {e}") from e
            if result.returncode != 0:
                tail = "\n".join(result.stderr.strip().splitlines()[-20:])
                raise ExtractionError(
                    f"Building Python {version} failed at '{' '.join(step)}':\n{tail}"
                )

        safe_rmtree(source_dir, require_prefix=install_root)
