"""Shared fixtures: an in-memory registry standing in for pub.dev."""

import json
from unittest.mock import patch

import pytest

REGISTRY = "https://pub.example"


def archive_url(name, version):
    return f"{REGISTRY}/api/archives/{name}-{version}.tar.gz"


def version_record(name, version, dependencies=None):
    return {
        "version": version,
        "archive_url": archive_url(name, version),
        "pubspec": {"name": name, "version": version, "dependencies": dependencies or {}},
    }


def package_document(name, releases, latest=None):
    """Build a registry document from ``{version: dependencies}``."""
    versions = [version_record(name, v, deps) for v, deps in releases.items()]
    if latest is None:
        latest = list(releases)[-1]
    return {
        "name": name,
        "latest": next(r for r in versions if r["version"] == latest),
        "versions": versions,
    }


class FakeRegistry:
    """Serves package documents and archives from dictionaries."""

    def __init__(self):
        self.documents = {}
        self.document_requests = []
        self.archive_requests = []

    def publish(self, name, releases, latest=None):
        self.documents[name] = json.dumps(package_document(name, releases, latest)).encode("utf-8")

    def get_package_document(self, name, registry_url=None, timeout=None):
        self.document_requests.append(name)
        return self.documents.get(name)

    def get_archive(self, url, timeout=None):
        self.archive_requests.append(url)
        return f"archive:{url}".encode("utf-8")


@pytest.fixture
def registry():
    fake = FakeRegistry()
    with patch("pubget.dependency_resolver.get_package_document", side_effect=fake.get_package_document), \
            patch("pubget.downloader.get_archive", side_effect=fake.get_archive):
        yield fake
