#!/usr/bin/env python3
"""
Registry client for pubget.

Thin wrapper around ``urllib.request`` that fetches package documents and
archives from a pub.dev-compatible registry. There is no retry and, unless a
timeout is given, a request blocks until the registry answers.
"""

import http.client
import logging
import urllib.error
import urllib.parse
import urllib.request
from typing import Optional

from .constants import Constants

logger = logging.getLogger(__name__)


class RegistryError(Exception):
    """Exception raised when the registry cannot be reached or answers badly."""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"{url}: {reason}")


def package_url(package_name: str, registry_url: Optional[str] = None) -> str:
    """Return the metadata document URL for ``package_name``."""
    base = (registry_url or Constants.REGISTRY_URL).rstrip("/")
    return f"{base}{Constants.PACKAGE_API_PATH}{urllib.parse.quote(package_name, safe='')}"


def http_get(url: str, timeout: Optional[float] = Constants.REQUEST_TIMEOUT) -> bytes:
    """
    Issue a GET request and return the response body.

    Args:
        url: The URL to fetch
        timeout: Seconds to wait for the registry, or None to wait forever

    Returns:
        The raw response body

    Raises:
        urllib.error.HTTPError: If the server answers with an error status
        RegistryError: If the request fails at the transport level
    """
    logger.debug("GET %s", url)
    try:
        request = urllib.request.Request(url, headers={
            "Accept": Constants.ACCEPT_HEADER,
            "User-Agent": Constants.USER_AGENT,
        })
        if timeout is None:
            response = urllib.request.urlopen(request)
        else:
            response = urllib.request.urlopen(request, timeout=timeout)
        with response:
            return response.read()
    except urllib.error.HTTPError:
        raise
    except (urllib.error.URLError, OSError) as e:
        raise RegistryError(url, str(getattr(e, "reason", e))) from e
    except (ValueError, http.client.HTTPException) as e:
        # Malformed URLs and truncated or garbled responses.
        raise RegistryError(url, f"{type(e).__name__}: {e}") from e


def get_package_document(
    package_name: str,
    registry_url: Optional[str] = None,
    timeout: Optional[float] = Constants.REQUEST_TIMEOUT
) -> Optional[bytes]:
    """
    Fetch the raw metadata document for a package.

    Args:
        package_name: The name of the package to fetch information for
        registry_url: Base URL of the registry, defaults to Constants.REGISTRY_URL
        timeout: Seconds to wait for the registry, or None to wait forever

    Returns:
        The document bytes, or None if the registry does not know the package

    Raises:
        RegistryError: On transport failures and error statuses other than 404
    """
    url = package_url(package_name, registry_url)
    try:
        return http_get(url, timeout)
    except urllib.error.HTTPError as e:
        e.close()
        if e.code == 404:
            logger.warning("package %s not found on registry", package_name)
            return None
        raise RegistryError(url, f"HTTP {e.code} {e.reason}") from e


def get_archive(archive_url: str, timeout: Optional[float] = Constants.REQUEST_TIMEOUT) -> bytes:
    """Download an archive; any HTTP error status is a RegistryError."""
    try:
        return http_get(archive_url, timeout)
    except urllib.error.HTTPError as e:
        e.close()
        raise RegistryError(archive_url, f"HTTP {e.code} {e.reason}") from e
