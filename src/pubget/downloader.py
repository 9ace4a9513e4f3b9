#!/usr/bin/env python3
"""
Downloader module for pubget.

This module writes resolved packages into the output directory: one
``<name>@info`` file with the registry document and one
``<name>@<archive file name>`` file with the archive. A file that already
exists is treated as cached and never fetched or rewritten.
"""

import logging
import os
import posixpath
import tempfile
import urllib.parse
from dataclasses import dataclass
from typing import Iterable, Optional

from tqdm import tqdm

from .constants import Constants
from .manifest import is_valid_package_name
from .models import Package
from .registry import get_archive

logger = logging.getLogger(__name__)


class CacheWriteError(Exception):
    """Exception raised when a cache entry cannot be written."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"cannot write {path}: {reason}")


@dataclass
class CacheReport:
    """Counts of what a caching pass did."""

    written: int = 0
    cached: int = 0
    fetched: int = 0


def archive_file_name(archive_url: str) -> str:
    """Return the last path segment of an archive URL."""
    path = urllib.parse.urlparse(archive_url).path
    return posixpath.basename(path.rstrip("/")) or "archive"


def info_path(package: Package, output_dir: str) -> str:
    return os.path.join(output_dir, f"{package.name}@{Constants.INFO_SUFFIX}")


def archive_path(package: Package, output_dir: str) -> str:
    return os.path.join(output_dir, f"{package.name}@{archive_file_name(package.archive_url)}")


def write_file(path: str, data: bytes) -> None:
    """
    Write ``data`` to ``path`` through a temporary file in the same directory.

    Raises:
        CacheWriteError: If the directory is not writable or the write fails.
    """
    directory = os.path.dirname(path) or "."
    try:
        fd, tmp = tempfile.mkstemp(dir=directory, suffix=".tmp")
    except OSError as e:
        raise CacheWriteError(path, str(e)) from e
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp, path)
    except OSError as e:
        try:
            os.unlink(tmp)
        except OSError:
            pass
        raise CacheWriteError(path, str(e)) from e


def cache_package(
    package: Package,
    output_dir: str,
    report: Optional[CacheReport] = None,
    timeout: Optional[float] = Constants.REQUEST_TIMEOUT
) -> CacheReport:
    """
    Make sure a resolved package's info and archive files exist.

    Args:
        package: A resolved package
        output_dir: Directory holding the cache files
        report: Report to accumulate into, a new one is created if omitted
        timeout: Request timeout in seconds for the archive download

    Returns:
        The updated report

    Raises:
        RegistryError: If the archive cannot be downloaded
        CacheWriteError: If a file cannot be written
    """
    if report is None:
        report = CacheReport()

    if not is_valid_package_name(package.name):
        raise CacheWriteError(os.path.join(output_dir, package.name), "invalid package name")

    logger.info("%s %s %s %d", package.name, package.version, package.archive_url, len(package.dependencies))

    path = info_path(package, output_dir)
    if os.path.exists(path):
        report.cached += 1
    else:
        write_file(path, package.info)
        report.written += 1

    path = archive_path(package, output_dir)
    if os.path.exists(path):
        logger.info("  cached")
        report.cached += 1
    else:
        data = get_archive(package.archive_url, timeout)
        report.fetched += 1
        write_file(path, data)
        report.written += 1

    return report


def cache_packages(
    packages: Iterable[Package],
    output_dir: str,
    progress: bool = False,
    timeout: Optional[float] = Constants.REQUEST_TIMEOUT
) -> CacheReport:
    """
    Cache every resolved package in ``packages``.

    Unresolved packages are skipped. The output directory is created if
    missing.

    Args:
        packages: Packages to cache, typically ``PackageGraph.resolved()``
        output_dir: Directory holding the cache files
        progress: Show a progress bar on stderr
        timeout: Request timeout in seconds for archive downloads

    Returns:
        What was written, fetched and found cached
    """
    try:
        os.makedirs(output_dir, exist_ok=True)
    except OSError as e:
        raise CacheWriteError(output_dir, str(e)) from e

    resolved = [p for p in packages if p.is_resolved]
    report = CacheReport()
    for package in tqdm(resolved, desc="Caching", unit="pkg", disable=not progress):
        cache_package(package, output_dir, report, timeout)
    return report
