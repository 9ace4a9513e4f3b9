#!/usr/bin/env python3
"""
Package records and the dependency graph built during resolution.

Every logical package is stored once in a ``PackageGraph``; dependency edges
are ``PackageKey`` references into the graph rather than nested copies.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional


class PackageKey(NamedTuple):
    """The (name, version) identity packages are deduplicated by."""

    name: str
    version: str

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass
class Package:
    """A package as known to the resolver.

    ``version`` holds the normalized constraint until the package is
    resolved, then the concrete version the registry matched.
    """

    name: str
    version: str
    archive_url: str = ""
    info: bytes = b""
    dependencies: List[PackageKey] = field(default_factory=list)

    @property
    def key(self) -> PackageKey:
        return PackageKey(self.name, self.version)

    @property
    def is_resolved(self) -> bool:
        return bool(self.archive_url)


class PackageGraph:
    """
    Arena of packages keyed by identity.

    A node can be known under more than one identity: the version it was
    requested at and the version it resolved to, which differ when the
    registry fell back to the latest release. Known identities are never
    forgotten, so a package that was already seen under either identity is
    not added again.

    The set of known identities only grows. The node count can drop by one
    when a fallback resolves onto a release another node already holds: the
    two nodes are merged and the requested identity becomes an alias of the
    survivor, so ``len(graph)`` counts distinct packages, not identities.
    """

    def __init__(self, packages: Optional[List[Package]] = None):
        self._nodes: Dict[PackageKey, Package] = {}
        self._identities: Dict[PackageKey, PackageKey] = {}
        for package in packages or []:
            self.add(package)

    def __contains__(self, key: object) -> bool:
        return key in self._identities

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[Package]:
        return iter(list(self._nodes.values()))

    def add(self, package: Package) -> bool:
        """Add ``package`` unless its identity is already known.

        Returns:
            bool: True if a new node was created.
        """
        key = package.key
        if key in self._identities:
            return False
        self._nodes[key] = package
        self._identities[key] = key
        return True

    def get(self, key: PackageKey) -> Package:
        """Return the node known under ``key``; raises KeyError if unknown."""
        return self._nodes[self._identities[key]]

    def unresolved_keys(self) -> List[PackageKey]:
        """Snapshot of the identities of every node still lacking an archive."""
        return [key for key, package in self._nodes.items() if not package.is_resolved]

    def resolved(self) -> List[Package]:
        return [package for package in self._nodes.values() if package.is_resolved]

    def mark_resolved(self, key: PackageKey, resolved: Package) -> Package:
        """
        Record the registry's answer for the node requested as ``key``.

        Args:
            key (PackageKey): Identity the node was requested under.
            resolved (Package): Resolved record returned by the resolver.

        Returns:
            Package: The node now holding the resolved data.

        Raises:
            ValueError: If ``resolved`` has no archive URL or the node was
            already resolved.
        """
        if not resolved.is_resolved:
            raise ValueError(f"{resolved.key} carries no archive URL")

        slot = self._identities[key]
        node = self._nodes[slot]
        if node.is_resolved:
            raise ValueError(f"{slot} is already resolved")

        owner = self._identities.get(resolved.key)
        if owner is not None and owner != slot:
            # Another node already stands for the resolved release.
            target = self._nodes[owner]
            del self._nodes[slot]
            for identity, points_to in self._identities.items():
                if points_to == slot:
                    self._identities[identity] = owner
            node = target
            if node.is_resolved:
                return node

        node.version = resolved.version
        node.archive_url = resolved.archive_url
        node.info = resolved.info
        node.dependencies = list(resolved.dependencies)
        self._identities.setdefault(resolved.key, self._identities[key])
        return node
