"""Git hosting providers."""

from .azuredevops import AzureDevOpsProvider
from .base import HTTPProvider, Provider, ProviderError, ProviderNotFoundError
from .github import GitHubProvider
from .gitlab import GitLabProvider
from .registry import ProviderRegistry, default_registry

__all__ = [
    "Provider",
    "HTTPProvider",
    "ProviderError",
    "ProviderNotFoundError",
    "AzureDevOpsProvider",
    "GitHubProvider",
    "GitLabProvider",
    "ProviderRegistry",
    "default_registry",
]
