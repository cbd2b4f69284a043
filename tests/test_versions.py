"""Tests for tag version ordering."""

import pytest

from autoupdate.terraform.versions import (
    compare_semver,
    is_newer,
    is_semver_like,
    normalize_version,
    sort_versions,
    upgrade_kind,
)


class TestNormalizeVersion:
    def test_adds_leading_v(self):
        assert normalize_version("1.2.3") == "v1.2.3"

    def test_keeps_existing_v(self):
        assert normalize_version("v1.2.3") == "v1.2.3"

    def test_strips_whitespace(self):
        assert normalize_version("  1.0.0 ") == "v1.0.0"


class TestIsSemverLike:
    @pytest.mark.parametrize(
        "tag", ["1.2.3", "v0.7.0", "v1.2", "v1", "1.0.0-rc.1", "1.0.0+build.5", "0.0.0"]
    )
    def test_accepts_semver_tags(self, tag):
        assert is_semver_like(tag) is True

    @pytest.mark.parametrize(
        "tag", ["latest", "dev-build-123", "stable", "01.2.3", "1.2.3.4", "1.0.0-01", "", "v"]
    )
    def test_rejects_floating_and_build_tags(self, tag):
        assert is_semver_like(tag) is False


class TestCompareSemver:
    def test_orders_by_major_minor_patch(self):
        assert compare_semver("v1.2.3", "v1.10.0") == -1
        assert compare_semver("2.0.0", "v1.99.99") == 1
        assert compare_semver("v1.2.3", "1.2.3") == 0

    def test_shorthand_equals_zero_filled(self):
        assert compare_semver("v1.2", "v1.2.0") == 0
        assert compare_semver("v1", "v1.0.0") == 0

    def test_prerelease_sorts_before_release(self):
        assert compare_semver("1.0.0-rc.1", "1.0.0") == -1
        assert compare_semver("1.0.0", "1.0.0-alpha") == 1

    def test_prerelease_identifiers(self):
        assert compare_semver("1.0.0-alpha", "1.0.0-alpha.1") == -1
        assert compare_semver("1.0.0-alpha.1", "1.0.0-alpha.beta") == -1
        assert compare_semver("1.0.0-beta.2", "1.0.0-beta.11") == -1
        assert compare_semver("1.0.0-rc.1", "1.0.0-beta.11") == 1

    def test_build_metadata_ignored(self):
        assert compare_semver("1.0.0+a", "1.0.0+b") == 0

    def test_invalid_raises(self):
        with pytest.raises(ValueError):
            compare_semver("latest", "1.0.0")


class TestIsNewer:
    def test_semver_newer(self):
        assert is_newer("v1.0.0", "v2.0.0") is True
        assert is_newer("v1.9.0", "v1.10.0") is True

    def test_semver_not_newer(self):
        assert is_newer("v2.0.0", "v1.0.0") is False
        assert is_newer("v1.0.0", "v1.0.0") is False

    def test_mixed_prefix(self):
        assert is_newer("1.0.0", "v1.0.1") is True

    def test_matches_compare_for_semver_pairs(self):
        pairs = [("1.0.0", "1.0.1"), ("2.0.0", "1.0.0"), ("1.0.0-rc.1", "1.0.0"), ("1.2", "1.2.0")]
        for a, b in pairs:
            assert is_newer(a, b) == (compare_semver(b, a) > 0)

    def test_non_semver_falls_back_to_string_comparison(self):
        assert is_newer("release-a", "release-b") is True
        assert is_newer("release-b", "release-a") is False

    def test_lexicographic_fallback_misorders_numbers(self):
        """Plain string comparison puts "9" after "10"."""
        assert is_newer("build-10", "build-9") is True
        assert is_newer("build-9", "build-10") is False


class TestSortVersions:
    def test_newest_first(self):
        assert sort_versions(["v1.0.0", "v1.10.0", "v1.2.0", "v2.0.0-rc.1"]) == [
            "v2.0.0-rc.1",
            "v1.10.0",
            "v1.2.0",
            "v1.0.0",
        ]

    def test_empty(self):
        assert sort_versions([]) == []


class TestUpgradeKind:
    @pytest.mark.parametrize(
        "current,latest,kind",
        [
            ("v1.4.2", "v2.0.0", "major"),
            ("1.4.2", "v1.5.0", "minor"),
            ("v1.4", "v1.4.3", "patch"),
            ("v1.0.0-rc.1", "v1.0.0", "patch"),
        ],
    )
    def test_semver_bumps(self, current, latest, kind):
        assert upgrade_kind(current, latest) == kind

    def test_non_semver_is_unclassified(self):
        assert upgrade_kind("main", "release-2") == ""
