"""Version ordering for Git tags.

Tags are compared as semantic versions when both sides are valid after
normalising to a leading ``v``; otherwise plain string comparison is used.
Shorthand forms ``v1`` and ``v1.2`` are valid and mean ``v1.0.0`` and
``v1.2.0``.
"""

from __future__ import annotations

import re
from functools import cmp_to_key

_SEMVER_RE = re.compile(
    r"^v(0|[1-9]\d*)"
    r"(?:\.(0|[1-9]\d*)"
    r"(?:\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r")?)?$"
)


def normalize_version(version: str) -> str:
    """Strip whitespace and ensure a leading ``v``."""
    version = version.strip()
    if version.startswith("v"):
        return version
    return "v" + version


def _parse(version: str) -> tuple[int, int, int, list[str]] | None:
    match = _SEMVER_RE.match(version)
    if not match:
        return None
    major, minor, patch, prerelease, _build = match.groups()
    prerelease_ids = prerelease.split(".") if prerelease else []
    # Numeric pre-release identifiers must not have leading zeros
    for ident in prerelease_ids:
        if ident.isdigit() and len(ident) > 1 and ident.startswith("0"):
            return None
    return int(major), int(minor or 0), int(patch or 0), prerelease_ids


def is_valid_semver(version: str) -> bool:
    """Return True if ``version`` (already normalised) is a semantic version."""
    return _parse(version) is not None


def is_semver_like(version: str) -> bool:
    """Return True if the tag looks like a semantic version (``1.2.3``, ``v0.7.0``).

    Rejects floating tags such as ``latest`` and build ids like ``dev-build-123``.
    """
    return is_valid_semver(normalize_version(version))


def _compare_prerelease(a: list[str], b: list[str]) -> int:
    # A version without pre-release has higher precedence
    if not a and not b:
        return 0
    if not a:
        return 1
    if not b:
        return -1

    for left, right in zip(a, b):
        if left == right:
            continue
        left_num, right_num = left.isdigit(), right.isdigit()
        if left_num and right_num:
            return -1 if int(left) < int(right) else 1
        if left_num:
            return -1
        if right_num:
            return 1
        return -1 if left < right else 1

    if len(a) == len(b):
        return 0
    return -1 if len(a) < len(b) else 1


def compare_semver(a: str, b: str) -> int:
    """Compare two semantic versions by precedence.

    Both arguments are normalised first. Returns -1, 0 or 1. Build metadata
    is ignored.

    Raises:
        ValueError: If either argument is not a valid semantic version.
    """
    left = _parse(normalize_version(a))
    right = _parse(normalize_version(b))
    if left is None or right is None:
        raise ValueError(f"not a semantic version: {a if left is None else b!r}")

    if left[:3] != right[:3]:
        return -1 if left[:3] < right[:3] else 1
    return _compare_prerelease(left[3], right[3])


def is_newer(current: str, candidate: str) -> bool:
    """Return True if ``candidate`` is strictly newer than ``current``.

    Falls back to lexicographic comparison of the raw strings when either side
    is not a semantic version, so ``"9" > "10"`` in that case.
    """
    if is_semver_like(current) and is_semver_like(candidate):
        return compare_semver(candidate, current) > 0
    return candidate > current


def _order(a: str, b: str) -> int:
    if is_newer(b, a):
        return 1
    if is_newer(a, b):
        return -1
    return 0


def sort_versions(versions: list[str]) -> list[str]:
    """Return ``versions`` ordered newest first."""
    return sorted(versions, key=cmp_to_key(_order), reverse=True)


def upgrade_kind(current: str, latest: str) -> str:
    """Classify a bump as ``major``, ``minor`` or ``patch``.

    Returns ``""`` when either side is not a semantic version.
    """
    left = _parse(normalize_version(current))
    right = _parse(normalize_version(latest))
    if left is None or right is None:
        return ""
    if left[0] != right[0]:
        return "major"
    if left[1] != right[1]:
        return "minor"
    return "patch"
