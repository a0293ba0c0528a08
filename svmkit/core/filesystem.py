"""
Cross-platform file system utilities for svmkit.

This module provides the file operations the installer and the activation
layer are built on:
- Archive extraction (zip, tar.gz) with traversal protection
- Directory merge and flatten used to normalize extracted layouts
- Safe file operations (atomic writes, safe deletion, recursive copy)

All failures are reported as FilesystemError or ExtractionError subclasses.
"""

import os
import shutil
import stat
import sys
import tarfile
import tempfile
import zipfile
from pathlib import Path
from typing import Optional, Union

from svmkit.core.exceptions import (
    ExtractionError,
    FilesystemError,
    InsecureArchiveError,
)

# Platform detection
IS_WINDOWS = os.name == "nt"

ZIP_SUFFIXES = (".zip",)
TAR_GZ_SUFFIXES = (".tar.gz", ".tgz")


# ============================================================================
# Path Utilities
# ============================================================================


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check if path is relative to (under) parent directory.

    Example:
        >>> is_relative_to(Path("/home/user/.svm/node"), Path("/home/user"))
        True
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure a directory exists (idempotent) and return it resolved."""
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(f"Failed to create directory '{path}': {e}") from e
    return path.resolve()


def is_empty_directory(path: Union[str, Path]) -> bool:
    """Return True if path is an existing directory with no entries."""
    path = Path(path)
    if not path.is_dir():
        return False
    return not any(path.iterdir())


# ============================================================================
# Archive Extraction
# ============================================================================


def detect_archive_format(archive_path: Union[str, Path]) -> Optional[str]:
    """
    Detect archive format from a file name.

    Returns:
        'zip', 'tar.gz', or None if the name matches neither
    """
    name = Path(archive_path).name.lower()
    if name.endswith(ZIP_SUFFIXES):
        return "zip"
    if name.endswith(TAR_GZ_SUFFIXES):
        return "tar.gz"
    return None


def _validate_archive_path(path: str, destination: Path) -> None:
    """
    Validate that an archive member path is safe to extract.

    Raises:
        InsecureArchiveError: If path attempts directory traversal
    """
    member_path = (destination / path).resolve()
    if not is_relative_to(member_path, destination.resolve()):
        raise InsecureArchiveError(
            f"Archive member '{path}' attempts directory traversal. "
            "This is a security risk and extraction has been blocked."
        )


def extract_zip(archive_path: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Extract a ZIP archive, restoring POSIX permission bits where recorded.

    Raises:
        ExtractionError: If the archive is missing or corrupt
        InsecureArchiveError: If a member would escape the destination
    """
    archive_path = Path(archive_path)
    destination = Path(destination)
    _check_archive(archive_path, destination)

    try:
        with zipfile.ZipFile(archive_path, "r") as zf:
            members = zf.infolist()
            for member in members:
                _validate_archive_path(member.filename, destination)

            for member in members:
                extracted = Path(zf.extract(member, destination))
                mode = (member.external_attr >> 16) & 0o777
                if mode and not IS_WINDOWS:
                    os.chmod(extracted, mode)
    except (zipfile.BadZipFile, OSError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e


def extract_tar_gz(
    archive_path: Union[str, Path], destination: Union[str, Path]
) -> None:
    """
    Extract a .tar.gz archive.

    Raises:
        ExtractionError: If the archive is missing or corrupt
        InsecureArchiveError: If a member would escape the destination
    """
    archive_path = Path(archive_path)
    destination = Path(destination)
    _check_archive(archive_path, destination)

    try:
        with tarfile.open(archive_path, "r:gz") as tar:
            for member in tar.getmembers():
                _validate_archive_path(member.name, destination)

            # Extract with filter for security (Python 3.12+)
            # For older Python, we've already validated paths above
            if sys.version_info >= (3, 12):
                tar.extractall(destination, filter="data")
            else:
                tar.extractall(destination)
    except (tarfile.TarError, OSError) as e:
        raise ExtractionError(f"Failed to extract {archive_path}: {e}") from e


def _check_archive(archive_path: Path, destination: Path) -> None:
    if not archive_path.is_file():
        raise ExtractionError(f"Archive not found: {archive_path}")
    ensure_directory(destination)


# ============================================================================
# Directory Merge
# ============================================================================


def merge_directory(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Move every entry of source into destination, then remove source.

    Entries already present in destination are overwritten, except that two
    directories with the same name are merged recursively. Each entry is
    renamed when possible and copied then deleted when the rename fails
    (different filesystem, locked file).

    Args:
        source: Directory whose contents are moved
        destination: Directory receiving the contents

    Raises:
        FilesystemError: If an entry can be neither renamed nor copied
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")
    ensure_directory(destination)

    for entry in list(source.iterdir()):
        target = destination / entry.name

        if _is_real_dir(target) and _is_real_dir(entry):
            merge_directory(entry, target)
            continue
        if target.exists() or target.is_symlink():
            remove_path(target)

        try:
            os.rename(entry, target)
        except OSError:
            _copy_entry(entry, target)
            remove_path(entry)

    try:
        source.rmdir()
    except OSError as e:
        raise FilesystemError(f"Failed to remove merged directory '{source}': {e}") from e


def flatten_directory(parent: Union[str, Path], subdir: str) -> None:
    """
    Move the contents of parent/subdir up into parent.

    The subdirectory is first renamed out of the way so that it may itself
    contain an entry with the same name (e.g. 'go/go').
    """
    parent = Path(parent)
    nested = parent / subdir
    if not nested.is_dir():
        raise FilesystemError(f"Expected directory not found after extraction: {nested}")

    staging = parent / f".{Path(subdir).name}.flatten"
    if staging.exists():
        remove_path(staging)
    try:
        os.rename(nested, staging)
    except OSError as e:
        raise FilesystemError(f"Failed to stage '{nested}' for flattening: {e}") from e
    merge_directory(staging, parent)


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink() and not is_junction(path)


def _copy_entry(entry: Path, target: Path) -> None:
    try:
        if entry.is_dir() and not entry.is_symlink():
            shutil.copytree(entry, target, symlinks=True)
        else:
            shutil.copy2(entry, target, follow_symlinks=False)
    except OSError as e:
        raise FilesystemError(f"Failed to move '{entry}' to '{target}': {e}") from e


# ============================================================================
# Safe File Operations
# ============================================================================


def atomic_write(
    file_path: Union[str, Path], content: Union[str, bytes], encoding: str = "utf-8"
) -> None:
    """
    Write file atomically using temp file + rename.

    If the write fails, the original file (if any) remains unchanged.

    Example:
        >>> atomic_write('config.json', '{"install_dir": "/home/me/.svm"}')
    """
    file_path = Path(file_path)
    file_path.parent.mkdir(parents=True, exist_ok=True)

    # Create temp file in same directory (ensures same filesystem)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=file_path.parent, prefix=f".{file_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        if isinstance(content, str):
            with open(temp_fd, "w", encoding=encoding) as f:
                f.write(content)
        else:
            with open(temp_fd, "wb") as f:
                f.write(content)

        temp_path.replace(file_path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def _remove_readonly(func, path, exc_info):
    # Windows refuses to delete read-only files
    os.chmod(path, stat.S_IWRITE)
    func(path)


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        FilesystemError: If path is outside require_prefix or deletion fails

    Example:
        >>> safe_rmtree('/home/me/.svm/go/1.21.5', require_prefix='/home/me/.svm')
    """
    path = Path(path)

    if require_prefix is not None:
        resolved = path.resolve()
        prefix = Path(require_prefix).resolve()
        if not is_relative_to(resolved, prefix):
            raise FilesystemError(
                f"Refusing to delete '{resolved}': not under required prefix '{prefix}'"
            )

    if not path.exists():
        return  # Already gone, nothing to do

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:
            shutil.rmtree(path, onerror=_remove_readonly)
        else:
            shutil.rmtree(path)
    except OSError as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}") from e


def remove_path(path: Union[str, Path]) -> None:
    """
    Remove a file, a link or a directory tree.

    Links (including Windows junctions) are removed without touching their
    target.
    """
    path = Path(path)
    try:
        if path.is_symlink() or is_junction(path):
            if IS_WINDOWS and path.is_dir():
                os.rmdir(path)
            else:
                path.unlink()
        elif path.is_dir():
            safe_rmtree(path)
        elif path.exists():
            path.unlink()
    except OSError as e:
        raise FilesystemError(f"Failed to remove '{path}': {e}") from e


def is_junction(path: Path) -> bool:
    checker = getattr(os.path, "isjunction", None)
    if checker is not None:
        return checker(path)
    if not IS_WINDOWS:
        return False
    try:
        attrs = os.lstat(path).st_file_attributes
    except (OSError, AttributeError):
        return False
    return bool(attrs & 0x400)  # FILE_ATTRIBUTE_REPARSE_POINT


def recursive_copy(source: Union[str, Path], destination: Union[str, Path]) -> None:
    """
    Recursively copy a directory tree, preserving symlinks.

    Example:
        >>> recursive_copy('/home/me/.svm/node/v20.11.0', '/home/me/.svm/node/current')
    """
    source = Path(source)
    destination = Path(destination)

    if not source.is_dir():
        raise FilesystemError(f"Source is not a directory: {source}")

    try:
        shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    except (OSError, shutil.Error) as e:
        raise FilesystemError(f"Failed to copy '{source}' to '{destination}': {e}") from e


__all__ = [
    "IS_WINDOWS",
    "is_relative_to",
    "ensure_directory",
    "is_empty_directory",
    "detect_archive_format",
    "extract_zip",
    "extract_tar_gz",
    "merge_directory",
    "flatten_directory",
    "atomic_write",
    "safe_rmtree",
    "remove_path",
    "is_junction",
    "recursive_copy",
]
