"""Resolve a dependency source to the tags of a repository in the same organization."""

from __future__ import annotations

import logging
import re

from autoupdate.domain import Repository
from autoupdate.providers.base import Provider, ProviderError

logger = logging.getLogger(__name__)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")


def extract_repo_name(source: str) -> str:
    """Derive a repository name from a module source or image name.

    ``git::https://host/org/_git/mod-net`` -> ``mod-net``
    ``git@github.com:org/vpc.git//modules/a`` -> ``vpc``
    """
    locator = source.split("?", 1)[0]
    if locator.startswith("git::"):
        locator = locator[len("git::") :]
    locator = _SCHEME_RE.sub("", locator)
    # A double slash after the scheme separates a subdirectory within the repo
    locator = locator.split("//", 1)[0]
    locator = locator.rstrip("/")
    name = re.split(r"[/:]", locator)[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    return name


class TagResolver:
    """Look up newest-first tags for dependency sources.

    Repository listings are fetched once per organization and tags once per
    repository for the lifetime of the resolver.
    """

    def __init__(self, provider: Provider, current_repo: Repository):
        self.provider = provider
        self.current_repo = current_repo
        self._repos: dict[str, list[Repository] | None] = {}
        self._tags: dict[str, list[str]] = {}

    def _repositories(self, organization: str) -> list[Repository] | None:
        if organization not in self._repos:
            try:
                self._repos[organization] = self.provider.discover_repositories(organization)
            except ProviderError as e:
                logger.debug(f"Could not list repositories in {organization}: {e}")
                self._repos[organization] = None
        return self._repos[organization]

    def resolve(self, source: str) -> list[str]:
        """Return tags for ``source`` newest first, or ``[]`` if unknown."""
        repo_name = extract_repo_name(source)
        if not repo_name:
            return []

        repos = self._repositories(self.current_repo.organization)
        if not repos:
            return []

        # Exact match only; "network" must not resolve to "network-legacy"
        match = next((r for r in repos if r.name == repo_name), None)
        if match is None:
            logger.debug(f"No repository named {repo_name!r} in {self.current_repo.organization}")
            return []

        if match.name not in self._tags:
            try:
                self._tags[match.name] = self.provider.get_tags(match)
            except ProviderError as e:
                logger.debug(f"Could not list tags for {match.full_name}: {e}")
                self._tags[match.name] = []
        return self._tags[match.name]


def resolve_tags(provider: Provider, current_repo: Repository, source: str) -> list[str]:
    """One-shot tag lookup for ``source`` in ``current_repo``'s organization."""
    return TagResolver(provider, current_repo).resolve(source)
