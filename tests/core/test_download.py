"""
Unit tests for download module.

Tests download functionality with mocked network requests.
"""

import pytest
import responses
from unittest.mock import patch

from svmkit.core.download import (
    DownloadProgress,
    download_file,
    fetch_json,
    fetch_text,
    format_progress,
)
from svmkit.core.exceptions import CatalogFetchError, DownloadError

URL = "https://example.com/go1.21.5.linux-amd64.tar.gz"


@pytest.mark.unit
class TestDownloadFile:
    """Test download_file function."""

    @responses.activate
    def test_successful_download(self, tmp_path):
        """Test the body lands at the destination."""
        body = b"archive-bytes" * 100
        responses.add(responses.GET, URL, body=body, status=200)

        destination = tmp_path / "cache" / "go.tar.gz"
        result = download_file(URL, destination)

        assert result == destination
        assert destination.read_bytes() == body
        assert not (tmp_path / "cache" / "go.tar.gz.part").exists()

    @responses.activate
    def test_http_error(self, tmp_path):
        """Test a 404 raises DownloadError and leaves nothing behind."""
        responses.add(responses.GET, URL, status=404)

        destination = tmp_path / "go.tar.gz"
        with pytest.raises(DownloadError, match="Failed to download"):
            download_file(URL, destination)

        assert list(tmp_path.iterdir()) == []

    def test_empty_url(self, tmp_path):
        """Test an empty URL is a download failure."""
        with pytest.raises(DownloadError, match="empty"):
            download_file("", tmp_path / "x.zip")

    @responses.activate
    def test_progress_callback(self, tmp_path):
        """Test progress is reported once the body is complete."""
        body = b"x" * 4096
        responses.add(
            responses.GET,
            URL,
            body=body,
            status=200,
            headers={"content-length": str(len(body))},
        )
        updates = []

        download_file(URL, tmp_path / "go.tar.gz", progress_callback=updates.append, chunk_size=1024)

        assert updates
        assert updates[-1].bytes_downloaded == 4096
        assert updates[-1].percentage == 100.0

    @responses.activate
    def test_sends_user_agent(self, tmp_path):
        """Test requests identify as svmkit."""
        responses.add(responses.GET, URL, body=b"data", status=200)

        download_file(URL, tmp_path / "go.tar.gz")

        assert responses.calls[0].request.headers["User-Agent"] == "svmkit"

    @responses.activate
    def test_write_failure(self, tmp_path):
        """Test a local I/O error is reported as DownloadError."""
        responses.add(responses.GET, URL, body=b"data", status=200)

        with patch("svmkit.core.download.open", side_effect=OSError("disk full"), create=True):
            with pytest.raises(DownloadError, match="disk full"):
                download_file(URL, tmp_path / "go.tar.gz")


@pytest.mark.unit
class TestFetch:
    """Test catalog fetch helpers."""

    @responses.activate
    def test_fetch_json(self):
        """Test JSON bodies are parsed."""
        responses.add(
            responses.GET,
            "https://nodejs.org/dist/index.json",
            json=[{"version": "v20.11.0"}],
        )
        assert fetch_json("https://nodejs.org/dist/index.json") == [{"version": "v20.11.0"}]

    @responses.activate
    def test_fetch_json_invalid(self):
        """Test an unparsable body raises CatalogFetchError."""
        responses.add(responses.GET, "https://example.com/index.json", body="<html>")
        with pytest.raises(CatalogFetchError, match="Invalid JSON"):
            fetch_json("https://example.com/index.json")

    @responses.activate
    def test_fetch_status_error(self):
        """Test a 5xx raises CatalogFetchError."""
        responses.add(responses.GET, "https://example.com/index.json", status=503)
        with pytest.raises(CatalogFetchError):
            fetch_json("https://example.com/index.json")

    @responses.activate
    def test_fetch_text(self):
        """Test HTML listings are returned as text."""
        responses.add(responses.GET, "https://example.com/ftp/", body='<a href="3.12.1/">')
        assert fetch_text("https://example.com/ftp/") == '<a href="3.12.1/">'


@pytest.mark.unit
class TestFormatProgress:
    """Test format_progress function."""

    def test_known_total(self):
        """Test formatting with a known size."""
        progress = DownloadProgress(52428800, 104857600, 50.0, 1048576, 50)
        assert format_progress(progress) == "50.0/100.0 MB (50.0%) at 1.0 MB/s ETA: 50s"

    def test_unknown_total(self):
        """Test formatting without a content length."""
        progress = DownloadProgress(1048576, 1048576, 0, 1048576, 0)
        assert format_progress(progress) == "1.0 MB at 1.0 MB/s"

    def test_str(self):
        """Test __str__ delegates to format_progress."""
        progress = DownloadProgress(1048576, 1048576, 0, 1048576, 0)
        assert str(progress) == format_progress(progress)
