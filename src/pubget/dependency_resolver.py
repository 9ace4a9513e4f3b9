#!/usr/bin/env python3
"""
Dependency resolver module for pubget.

This module resolves packages against the registry's package documents and
expands a manifest's direct dependencies into the complete transitive set.
Resolution is an exact match on the normalized version, falling back to the
registry's latest release; it is not a constraint solver.
"""

import json
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Set

from .constants import Constants
from .manifest import ComplexDependency, decode_dependency, is_valid_package_name
from .models import Package, PackageGraph, PackageKey
from .registry import RegistryError, get_package_document, package_url
from .versions import is_concrete_version

logger = logging.getLogger(__name__)

Resolver = Callable[[str, str], Package]


class DependencyResolutionError(Exception):
    """Exception raised for errors in dependency resolution."""


def parse_package_document(package_name: str, data: bytes) -> Dict[str, Any]:
    """
    Decode a registry package document.

    Args:
        package_name: The package the document was fetched for
        data: Raw response body

    Returns:
        The document with ``versions`` guaranteed to be a list and ``latest``
        a mapping

    Raises:
        RegistryError: If the body is not a JSON object
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise RegistryError(package_url(package_name), f"malformed package document: {e}") from e

    if not isinstance(document, dict):
        raise RegistryError(package_url(package_name), "package document is not a JSON object")

    versions = document.get("versions")
    document["versions"] = [v for v in versions if isinstance(v, dict)] if isinstance(versions, list) else []
    if not isinstance(document.get("latest"), dict):
        document["latest"] = {}
    return document


def extract_dependencies(package_name: str, record: Mapping[str, Any]) -> List[PackageKey]:
    """
    Collect the simple dependencies declared by a version record.

    Dependencies given as mappings (sdk, git, path) and dependencies whose
    name is not a legal package name are logged and skipped.
    """
    pubspec = record.get("pubspec")
    declared = pubspec.get("dependencies") if isinstance(pubspec, dict) else None
    if not isinstance(declared, dict):
        return []

    dependencies = []
    for dep_name, value in declared.items():
        if not is_valid_package_name(dep_name):
            logger.warning("  %s: skipping dependency with invalid name %r", package_name, dep_name)
            continue
        spec = decode_dependency(value)
        if isinstance(spec, ComplexDependency):
            logger.info("  %s: skipping %s dependency %s %s", package_name, spec.kind, dep_name, spec.source)
            continue
        key = PackageKey(dep_name, spec.version)
        logger.info("  dependency %s %s", key.name, key.version)
        dependencies.append(key)
    return dependencies


def resolve_package(
    package_name: str,
    version: str,
    registry_url: Optional[str] = None,
    timeout: Optional[float] = Constants.REQUEST_TIMEOUT
) -> Package:
    """
    Resolve one package against the registry.

    Args:
        package_name (str): The name of the package.
        version (str): Normalized version to match exactly.
        registry_url (Optional[str]): Base URL of the registry.
        timeout (Optional[float]): Request timeout in seconds.

    Returns:
        Package: The resolved package. Its ``archive_url`` is empty when the
        registry neither has the requested version nor a latest release.

    Raises:
        RegistryError: If the registry is unreachable or the document is
        malformed.
    """
    logger.info("read info package %s version %s", package_name, version)
    if not is_concrete_version(version):
        logger.debug("%s: %r is not a concrete version, expecting latest", package_name, version)

    data = get_package_document(package_name, registry_url, timeout)
    if data is None:
        return Package(name=package_name, version=version)

    document = parse_package_document(package_name, data)
    record = next(
        (v for v in document["versions"] if v.get("version") == version and v.get("archive_url")),
        None
    )
    if record is None:
        record = document["latest"]
        if record.get("archive_url"):
            logger.info("  %s %s not published, using latest %s", package_name, version, record.get("version"))

    if not record.get("archive_url"):
        return Package(name=package_name, version=version, info=data)

    return Package(
        name=package_name,
        version=str(record.get("version") or version),
        archive_url=record["archive_url"],
        info=data,
        dependencies=extract_dependencies(package_name, record),
    )


def resolve_all(
    graph: PackageGraph,
    resolver: Optional[Resolver] = None,
    max_rounds: int = Constants.MAX_ROUNDS
) -> PackageGraph:
    """
    Expand ``graph`` until a round discovers no new packages.

    Each round resolves every unresolved package and queues the dependencies
    not already in the graph or in this round's discoveries. Packages the
    registry cannot satisfy are reported once and left unresolved.

    Args:
        graph (PackageGraph): Graph seeded with the manifest's packages.
        resolver (Optional[Resolver]): Called as ``resolver(name, version)``;
            defaults to ``resolve_package`` against the default registry.
        max_rounds (int): Give up after this many rounds; 0 means no limit.

    Returns:
        PackageGraph: The same graph, expanded in place.

    Raises:
        DependencyResolutionError: If ``max_rounds`` is exceeded.
        ValueError: If ``max_rounds`` is negative.
    """
    if max_rounds < 0:
        raise ValueError(f"max_rounds must be 0 or greater, got {max_rounds}")
    if resolver is None:
        resolver = resolve_package

    missing: Set[PackageKey] = set()
    rounds = 0
    while True:
        rounds += 1
        if max_rounds and rounds > max_rounds:
            raise DependencyResolutionError(
                f"no fixpoint after {max_rounds} rounds, {len(graph)} packages known"
            )

        discovered: List[Package] = []
        queued: Set[PackageKey] = set()
        for key in graph.unresolved_keys():
            if key in missing or graph.get(key).is_resolved:
                continue

            result = resolver(key.name, key.version)
            if not result.is_resolved:
                logger.warning("cannot find %s %s", key.name, key.version)
                missing.add(key)
                continue

            node = graph.mark_resolved(key, result)
            for dep in node.dependencies:
                if dep in graph or dep in queued:
                    continue
                queued.add(dep)
                discovered.append(Package(name=dep.name, version=dep.version))

        for package in discovered:
            graph.add(package)

        logger.debug("round %d: %d new packages", rounds, len(discovered))
        if not discovered:
            break

    logger.info("Total %d packages, %d resolved", len(graph), len(graph.resolved()))
    return graph


def print_dependency_tree(
    graph: PackageGraph,
    key: PackageKey,
    indent: int = 0,
    visited: Optional[Set[PackageKey]] = None
) -> None:
    """
    Print a hierarchical dependency tree for a resolved package.

    Args:
        graph (PackageGraph): A graph expanded by ``resolve_all``.
        key (PackageKey): Identity of the package to start from.
        indent (int): Indentation level for printing.
        visited (Optional[Set[PackageKey]]): Identities already printed on the
            current path, used to detect circular references.
    """
    if visited is None:
        visited = set()

    if key not in graph:
        print(f"{'  ' * indent}└── {key} (unknown)")
        return

    package = graph.get(key)
    if package.key in visited:
        print(f"{'  ' * indent}└── {package.key} (circular reference)")
        return

    if not package.is_resolved:
        print(f"{'  ' * indent}└── {key} (not found)")
        return

    print(f"{'  ' * indent}└── {package.key}")
    for dep in package.dependencies:
        print_dependency_tree(graph, dep, indent + 1, visited | {package.key})
