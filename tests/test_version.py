"""Tests for version module."""

from autoupdate import __version__
from autoupdate.version import VERSION, VersionInfo, get_version_info


class TestVersionInfo:
    """Tests for VersionInfo dataclass."""

    def test_format_full(self):
        """Test full format lists updaters and providers."""
        info = VersionInfo(
            version="1.0.0",
            supported_updaters=("terraform",),
            supported_providers=("github", "gitlab"),
        )
        assert info.format_full() == (
            "autoupdate v1.0.0 (updaters: terraform; providers: github, gitlab)"
        )


class TestGetVersionInfo:
    def test_reports_builtins(self):
        info = get_version_info()
        assert info.version == VERSION
        assert info.supported_updaters == ("terraform",)
        assert info.supported_providers == ("azuredevops", "github", "gitlab")

    def test_cached(self):
        assert get_version_info() is get_version_info()

    def test_package_version_matches(self):
        assert __version__ == VERSION
