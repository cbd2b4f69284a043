"""Lookup table from provider type names to provider factories."""

from __future__ import annotations

from collections.abc import Callable

from autoupdate.providers.azuredevops import AzureDevOpsProvider
from autoupdate.providers.base import Provider, ProviderNotFoundError
from autoupdate.providers.github import GitHubProvider
from autoupdate.providers.gitlab import GitLabProvider

ProviderFactory = Callable[..., Provider]


class ProviderRegistry:
    """Registered provider factories keyed by type name (``github``, ``azuredevops``, ...)."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderFactory] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        self._factories[name] = factory

    def get(self, name: str, token: str, base_url: str | None = None) -> Provider:
        """Build a provider instance.

        Raises:
            ProviderNotFoundError: If ``name`` was never registered.
        """
        factory = self._factories.get(name)
        if factory is None:
            raise ProviderNotFoundError(f"unknown provider type: {name!r}")
        if base_url:
            return factory(token, base_url=base_url)
        return factory(token)

    def names(self) -> list[str]:
        return sorted(self._factories)


def default_registry() -> ProviderRegistry:
    """Registry with every built-in provider."""
    registry = ProviderRegistry()
    registry.register(GitHubProvider.name, GitHubProvider)
    registry.register(GitLabProvider.name, GitLabProvider)
    registry.register(AzureDevOpsProvider.name, AzureDevOpsProvider)
    return registry
