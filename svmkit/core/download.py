"""
Network access for svmkit.

This module provides the two transport primitives the rest of the code uses:
- Streaming downloads of release archives, with progress reporting
- Small GET requests for upstream version catalogs (JSON or HTML)

There is no transport-level retry: a failed archive download raises
DownloadError and the installer moves on to an older version instead.
"""

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

import requests
from requests.exceptions import RequestException

from svmkit.core.exceptions import CatalogFetchError, DownloadError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_CHUNK_SIZE = 8192
USER_AGENT = "svmkit"


@dataclass
class DownloadProgress:
    """Progress information for a download."""

    bytes_downloaded: int
    total_bytes: int
    percentage: float
    speed_bps: float  # bytes per second
    eta_seconds: float  # estimated time remaining

    def __str__(self) -> str:
        """Format progress for display."""
        return format_progress(self)


def download_file(
    url: str,
    destination: Path,
    progress_callback: Optional[Callable[[DownloadProgress], None]] = None,
    timeout: int = DEFAULT_TIMEOUT,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Path:
    """
    Stream a URL to a local file.

    The body is written to a sibling '.part' file which is renamed into place
    only once complete, so an interrupted download never looks like a valid
    cached archive.

    Args:
        url: URL to download from
        destination: Local path to save file
        progress_callback: Optional callback for progress updates
        timeout: Request timeout in seconds
        chunk_size: Bytes per streamed chunk

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the URL is empty or the transfer fails

    Example:
        >>> download_file(
        ...     "https://dl.google.com/go/go1.21.5.linux-amd64.tar.gz",
        ...     Path("~/.svm/cache/go/go1.21.5.linux-amd64.tar.gz").expanduser(),
        ... )
    """
    if not url:
        raise DownloadError("Download URL is empty")

    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    partial = destination.with_name(destination.name + ".part")

    logger.info(f"Downloading from {url}")

    try:
        response = requests.get(
            url,
            stream=True,
            timeout=timeout,
            allow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        response.raise_for_status()

        content_length = response.headers.get("content-length")
        total_size = int(content_length) if content_length else 0

        downloaded = 0
        start_time = time.time()
        last_progress_time = start_time

        with open(partial, "wb") as f:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if not chunk:
                    continue
                f.write(chunk)
                downloaded += len(chunk)

                # Report progress (max once per 0.5 seconds to avoid spam)
                current_time = time.time()
                if progress_callback and (
                    current_time - last_progress_time >= 0.5
                    or downloaded == total_size
                ):
                    progress_callback(
                        _make_progress(downloaded, total_size, current_time - start_time)
                    )
                    last_progress_time = current_time

        partial.replace(destination)
    except (RequestException, OSError) as e:
        partial.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {url}: {e}") from e

    logger.info(f"Download complete: {destination}")
    return destination


def _make_progress(downloaded: int, total_size: int, elapsed: float) -> DownloadProgress:
    speed = downloaded / elapsed if elapsed > 0 else 0
    remaining = total_size - downloaded if total_size > 0 else 0
    eta = remaining / speed if speed > 0 else 0
    return DownloadProgress(
        bytes_downloaded=downloaded,
        total_bytes=total_size if total_size > 0 else downloaded,
        percentage=(downloaded / total_size * 100) if total_size > 0 else 0,
        speed_bps=speed,
        eta_seconds=eta,
    )


def fetch_bytes(url: str, timeout: int = DEFAULT_TIMEOUT) -> bytes:
    """
    GET a small resource and return its body.

    Raises:
        CatalogFetchError: On network failure or a non-2xx status
    """
    logger.debug(f"Fetching {url}")
    try:
        response = requests.get(
            url, timeout=timeout, allow_redirects=True, headers={"User-Agent": USER_AGENT}
        )
        response.raise_for_status()
    except RequestException as e:
        raise CatalogFetchError(f"Failed to fetch {url}: {e}") from e
    return response.content


def fetch_text(url: str, timeout: int = DEFAULT_TIMEOUT) -> str:
    """GET a resource and decode it as UTF-8 text."""
    return fetch_bytes(url, timeout=timeout).decode("utf-8", errors="replace")


def fetch_json(url: str, timeout: int = DEFAULT_TIMEOUT) -> Any:
    """
    GET a resource and parse it as JSON.

    Raises:
        CatalogFetchError: On network failure or invalid JSON
    """
    body = fetch_bytes(url, timeout=timeout)
    try:
        return json.loads(body)
    except ValueError as e:
        raise CatalogFetchError(f"Invalid JSON from {url}: {e}") from e


def format_progress(progress: DownloadProgress) -> str:
    """
    Format progress for display.

    Example:
        >>> progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        >>> print(format_progress(progress))
        50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s
    """
    mb_downloaded = progress.bytes_downloaded / 1024 / 1024
    mb_total = progress.total_bytes / 1024 / 1024
    speed_mbps = progress.speed_bps / 1024 / 1024

    if progress.total_bytes > 0 and progress.percentage > 0:
        return (
            f"{mb_downloaded:.1f}/{mb_total:.1f} MB "
            f"({progress.percentage:.1f}%) "
            f"at {speed_mbps:.1f} MB/s "
            f"ETA: {progress.eta_seconds:.0f}s"
        )
    else:
        # Unknown total size
        return f"{mb_downloaded:.1f} MB at {speed_mbps:.1f} MB/s"


__all__ = [
    "DownloadProgress",
    "download_file",
    "fetch_bytes",
    "fetch_text",
    "fetch_json",
    "format_progress",
]
