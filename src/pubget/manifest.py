#!/usr/bin/env python3
"""
Manifest reading for pubget.

A pubspec maps each dependency name either to a version constraint string or
to a nested mapping describing an SDK, git, path or hosted source. Both
shapes are decoded into explicit types so callers never inspect the raw YAML
tree.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

import yaml

from .models import Package
from .versions import normalize_constraint

logger = logging.getLogger(__name__)

ANY_VERSION = "any"

# Lowercase letters, digits and underscores, as pub.dev enforces.
PACKAGE_NAME_RE = re.compile(r"[a-z0-9_]+")


class ManifestError(Exception):
    """Exception raised when a manifest cannot be read or decoded."""


@dataclass(frozen=True)
class VersionConstraint:
    """A dependency declared with a plain constraint such as ``^1.2.0``."""

    constraint: str

    @property
    def version(self) -> str:
        return normalize_constraint(self.constraint)


@dataclass(frozen=True)
class ComplexDependency:
    """A dependency declared with a mapping (sdk, git, path, hosted...)."""

    source: Dict[str, Any]

    @property
    def kind(self) -> str:
        for kind in ("sdk", "git", "path", "hosted"):
            if kind in self.source:
                return kind
        return "unknown"


DependencySpec = Union[VersionConstraint, ComplexDependency]


def is_valid_package_name(name: str) -> bool:
    """Return True if ``name`` is a legal pub package name."""
    return PACKAGE_NAME_RE.fullmatch(name) is not None


def decode_dependency(value: Any) -> DependencySpec:
    """
    Decode one value of a ``dependencies`` mapping.

    Args:
        value: The raw YAML/JSON value.

    Returns:
        DependencySpec: A VersionConstraint for strings (and for an empty
        value, which pub reads as ``any``), a ComplexDependency otherwise.
    """
    if value is None:
        return VersionConstraint(ANY_VERSION)
    if isinstance(value, str):
        return VersionConstraint(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # YAML reads an unquoted ``1.0`` as a number.
        return VersionConstraint(str(value))
    if isinstance(value, Mapping):
        return ComplexDependency(dict(value))
    return ComplexDependency({"value": value})


def decode_dependencies(raw: Any) -> Dict[str, DependencySpec]:
    """Decode a whole ``dependencies`` mapping, preserving its order."""
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise ManifestError(f"dependencies must be a mapping, got {type(raw).__name__}")
    return {str(name): decode_dependency(value) for name, value in raw.items()}


@dataclass
class Manifest:
    """The parts of a pubspec that drive resolution."""

    name: str = ""
    dependencies: Dict[str, DependencySpec] = field(default_factory=dict)
    dev_dependencies: Dict[str, DependencySpec] = field(default_factory=dict)

    def root_packages(self, include_dev: bool = False) -> List[Package]:
        """
        Build the initial, unresolved package list.

        Complex dependencies are logged and left out; they are kept on the
        manifest itself. Names pub would reject are logged and dropped.

        Args:
            include_dev (bool): Also start from ``dev_dependencies``.

        Returns:
            List[Package]: One package per simple dependency.
        """
        sections = [self.dependencies]
        if include_dev:
            sections.append(self.dev_dependencies)

        packages = []
        for section in sections:
            for name, spec in section.items():
                if not is_valid_package_name(name):
                    logger.warning("skipping dependency with invalid name %r", name)
                    continue
                if isinstance(spec, ComplexDependency):
                    logger.info("skipping %s dependency %s: %s", spec.kind, name, spec.source)
                    continue
                logger.info("dependency %s %s", name, spec.constraint)
                packages.append(Package(name=name, version=spec.version))
        return packages

    def complex_dependencies(self) -> Dict[str, ComplexDependency]:
        return {
            name: spec
            for section in (self.dependencies, self.dev_dependencies)
            for name, spec in section.items()
            if isinstance(spec, ComplexDependency)
        }


def parse_manifest(text: str) -> Manifest:
    """Decode pubspec YAML text into a Manifest."""
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestError(f"invalid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, Mapping):
        raise ManifestError("manifest root must be a mapping")

    return Manifest(
        name=str(data.get("name") or ""),
        dependencies=decode_dependencies(data.get("dependencies")),
        dev_dependencies=decode_dependencies(data.get("dev_dependencies")),
    )


def load_manifest(path: str) -> Manifest:
    """
    Read and decode a pubspec file.

    Args:
        path (str): Path to the manifest.

    Returns:
        Manifest: The decoded manifest.

    Raises:
        ManifestError: If the file cannot be read or is not a valid pubspec.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise ManifestError(f"cannot read manifest '{path}': {e}") from e
    return parse_manifest(text)
