"""Version information for autoupdate."""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

__all__ = ["VERSION", "get_version_info", "VersionInfo"]

VERSION = "0.1.0"


@dataclass
class VersionInfo:
    """Version metadata."""

    version: str
    supported_updaters: tuple[str, ...]
    supported_providers: tuple[str, ...]

    def format_full(self) -> str:
        """Format as full version string."""
        return (
            f"autoupdate v{self.version} "
            f"(updaters: {', '.join(self.supported_updaters)}; "
            f"providers: {', '.join(self.supported_providers)})"
        )


@lru_cache(maxsize=1)
def get_version_info() -> VersionInfo:
    """Get version information.

    Results are cached for the lifetime of the process.
    """
    from autoupdate.providers.registry import default_registry
    from autoupdate.terraform.updater import UPDATER_NAME

    return VersionInfo(
        version=VERSION,
        supported_updaters=(UPDATER_NAME,),
        supported_providers=tuple(default_registry().names()),
    )
