"""Tests for the registry client."""

import http.client
import io
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

import pubget
from pubget.registry import RegistryError, get_archive, get_package_document, http_get, package_url


def _response(body):
    response = MagicMock()
    response.read.return_value = body
    response.__enter__.return_value = response
    return response


def _http_error(url, code):
    return urllib.error.HTTPError(url, code, "error", {}, io.BytesIO(b""))


class TestPackageUrl:

    def test_default_registry(self):
        assert package_url("http", "https://pub.dev") == "https://pub.dev/api/packages/http"

    def test_trailing_slash(self):
        assert package_url("foo", "https://pub.example/") == "https://pub.example/api/packages/foo"


class TestHttpGet:

    @patch("pubget.registry.urllib.request.urlopen")
    def test_returns_body(self, mock_urlopen):
        mock_urlopen.return_value = _response(b"payload")

        assert http_get("https://pub.example/x") == b"payload"
        request = mock_urlopen.call_args[0][0]
        assert request.full_url == "https://pub.example/x"
        assert request.get_header("Accept") == "application/vnd.pub.v2+json"

    @patch("pubget.registry.urllib.request.urlopen")
    def test_timeout_passed_when_given(self, mock_urlopen):
        mock_urlopen.return_value = _response(b"")

        http_get("https://pub.example/x", timeout=5)

        assert mock_urlopen.call_args[1] == {"timeout": 5}

    @patch("pubget.registry.urllib.request.urlopen")
    def test_transport_error(self, mock_urlopen):
        mock_urlopen.side_effect = urllib.error.URLError("connection refused")

        with pytest.raises(RegistryError) as excinfo:
            http_get("https://pub.example/x")
        assert "connection refused" in str(excinfo.value)


class TestGetPackageDocument:

    @patch("pubget.registry.urllib.request.urlopen")
    def test_returns_raw_bytes(self, mock_urlopen):
        mock_urlopen.return_value = _response(b'{"name": "foo"}')

        assert get_package_document("foo", "https://pub.example") == b'{"name": "foo"}'

    @patch("pubget.registry.urllib.request.urlopen")
    def test_not_found_is_none(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error("https://pub.example/api/packages/nope", 404)

        assert get_package_document("nope", "https://pub.example") is None

    @patch("pubget.registry.urllib.request.urlopen")
    def test_server_error_raises(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error("https://pub.example/api/packages/foo", 500)

        with pytest.raises(RegistryError):
            get_package_document("foo", "https://pub.example")


class TestGetArchive:

    @patch("pubget.registry.urllib.request.urlopen")
    def test_not_found_raises(self, mock_urlopen):
        mock_urlopen.side_effect = _http_error("https://pub.example/a.tar.gz", 404)

        with pytest.raises(RegistryError):
            get_archive("https://pub.example/a.tar.gz")


class TestMalformedRequests:

    def test_url_without_scheme(self):
        with pytest.raises(RegistryError) as excinfo:
            http_get("archives/foo-1.0.0.tar.gz")
        assert "archives/foo-1.0.0.tar.gz" in str(excinfo.value)

    def test_archive_url_without_scheme(self):
        with pytest.raises(RegistryError):
            get_archive("archives/foo-1.0.0.tar.gz")

    @patch("pubget.registry.urllib.request.urlopen")
    def test_truncated_body(self, mock_urlopen):
        response = _response(b"")
        response.read.side_effect = http.client.IncompleteRead(b"par", 10)
        mock_urlopen.return_value = response

        with pytest.raises(RegistryError):
            http_get("https://pub.example/a.tar.gz")

    def test_package_name_cannot_leave_api_path(self):
        url = package_url("../escaped", "https://pub.example")
        assert url == "https://pub.example/api/packages/..%2Fescaped"

    @patch("pubget.registry.urllib.request.urlopen")
    def test_user_agent_carries_version(self, mock_urlopen):
        mock_urlopen.return_value = _response(b"")

        http_get("https://pub.example/x")

        request = mock_urlopen.call_args[0][0]
        assert request.get_header("User-agent") == f"pubget/{pubget.__version__}"
