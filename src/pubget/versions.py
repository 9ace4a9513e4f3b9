#!/usr/bin/env python3
"""
Version constraint handling for pubget.

Registry lookups are exact-match on a concrete version string, so the
constraints found in manifests (``^1.2.0``, ``>=1.0.0 <2.0.0``) are reduced
to a single version token before they are used as identity keys.
"""

import re

from packaging.version import InvalidVersion, Version

# Semantic version with optional prerelease and build parts, e.g. 2.0.0-dev.1+3.
SEMVER_RE = re.compile(r"\d+\.\d+\.\d+(-[0-9A-Za-z.-]+)?(\+[0-9A-Za-z.-]+)?")


def normalize_constraint(constraint: str) -> str:
    """
    Reduce a version constraint to a single version token.

    Leading carets are dropped. When the constraint carries an upper bound
    (``<=`` or ``<``) the text after its last occurrence is used; otherwise
    the constraint itself is returned. Malformed input is never rejected.

    Args:
        constraint (str): The constraint as written in a pubspec.

    Returns:
        str: The version token, e.g. ``"3.0.3"`` for ``"^3.0.3"`` and
        ``"2.0.0"`` for ``">=1.0.0 <2.0.0"``.
    """
    token = constraint.strip().lstrip("^")

    idx = token.rfind("<=")
    if idx != -1:
        token = token[idx + 2:]
    else:
        idx = token.rfind("<")
        if idx != -1:
            token = token[idx + 1:]

    return token.strip()


def is_concrete_version(token: str) -> bool:
    """Return True if ``token`` names a single release rather than a range."""
    if not token:
        return False
    if SEMVER_RE.fullmatch(token):
        return True
    try:
        Version(token)
    except InvalidVersion:
        return False
    return True
