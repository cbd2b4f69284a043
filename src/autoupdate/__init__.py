"""autoupdate: keep Git-pinned Terraform modules and Terragrunt image tags up to date."""

from autoupdate.version import VERSION, VersionInfo, get_version_info

__version__ = VERSION
__all__ = ["__version__", "VERSION", "VersionInfo", "get_version_info"]
