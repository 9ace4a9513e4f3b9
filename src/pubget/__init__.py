"""Tool for mirroring pub packages and their dependencies."""

__version__ = "0.1.0"

from .dependency_resolver import resolve_all, resolve_package
from .downloader import cache_packages
from .manifest import load_manifest
from .models import Package, PackageGraph, PackageKey
from .versions import normalize_constraint
