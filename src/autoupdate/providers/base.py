"""Git hosting provider interface.

Providers give the updaters file access, tag listing, repository discovery
and branch/PR creation. Every operation is a plain synchronous call; any
transport or API failure surfaces as ``ProviderError``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import httpx

from autoupdate.domain import (
    BranchInput,
    File,
    PullRequest,
    PullRequestInput,
    Repository,
)

DEFAULT_TIMEOUT = 30.0
PER_PAGE = 100


class ProviderError(Exception):
    """Base exception for provider errors."""

    pass


class ProviderNotFoundError(ProviderError):
    """Raised when no provider is registered under a name."""

    pass


class Provider(ABC):
    """A Git hosting service (GitHub, GitLab, ...)."""

    name: str = ""

    @abstractmethod
    def discover_repositories(self, organization: str) -> list[Repository]:
        """List all repositories in an organization or group."""

    @abstractmethod
    def list_files(self, repo: Repository, suffix: str = "") -> list[File]:
        """List files on the default branch, optionally filtered by path suffix."""

    @abstractmethod
    def get_file_content(self, repo: Repository, path: str) -> str:
        """Read a file from the default branch."""

    @abstractmethod
    def get_tags(self, repo: Repository) -> list[str]:
        """Return tag names ordered newest first."""

    @abstractmethod
    def has_file(self, repo: Repository, path: str) -> bool:
        """Return True if ``path`` exists on the default branch."""

    @abstractmethod
    def create_branch_with_changes(self, repo: Repository, branch: BranchInput) -> None:
        """Create a branch with one commit carrying ``branch.changes``."""

    @abstractmethod
    def create_pull_request(self, repo: Repository, pr: PullRequestInput) -> PullRequest:
        """Open a pull/merge request."""

    @abstractmethod
    def pull_request_exists(self, repo: Repository, source_branch: str) -> bool:
        """Return True if an open PR already exists for ``source_branch``."""

    def close(self) -> None:
        """Release held connections. Nothing to do by default."""


def strip_ref_prefix(branch: str) -> str:
    """``refs/heads/main`` -> ``main``."""
    prefix = "refs/heads/"
    return branch[len(prefix) :] if branch.startswith(prefix) else branch


class HTTPProvider(Provider):
    """Shared ``httpx`` plumbing for REST-backed providers.

    Example:
        with GitHubProvider(token) as provider:
            repos = provider.discover_repositories("my-org")
    """

    default_base_url = ""

    def __init__(
        self,
        token: str,
        base_url: str | None = None,
        client: httpx.Client | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.token = token
        self.base_url = (base_url or self.default_base_url).rstrip("/")
        self._client = client or httpx.Client(
            base_url=self.base_url, headers=self.auth_headers(), timeout=timeout
        )

    def auth_headers(self) -> dict[str, str]:
        return {}

    def request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request and raise ``ProviderError`` on failure."""
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.name}: {method} {url} timed out") from e
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name}: {method} {url} failed: {e}") from e

        if resp.status_code >= 400:
            raise ProviderError(
                f"{self.name}: {method} {url} returned {resp.status_code}: {resp.text[:200]}"
            )
        return resp

    def decode(
        self, resp: httpx.Response, method: str, url: str, expect_list: bool = False
    ) -> Any:
        """Decode a JSON body, raising ``ProviderError`` when it is not JSON.

        A proxy that answers 200 with an HTML page is reported like any other
        failed call. With ``expect_list`` the body must also be a JSON array.
        """
        try:
            data = resp.json()
        except ValueError as e:
            raise ProviderError(f"{self.name}: {method} {url} returned invalid JSON") from e
        if expect_list and not isinstance(data, list):
            raise ProviderError(f"{self.name}: {method} {url} did not return a list")
        return data

    def request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        return self.decode(self.request(method, url, **kwargs), method, url)

    def request_list(self, method: str, url: str, **kwargs: Any) -> list[Any]:
        return self.decode(self.request(method, url, **kwargs), method, url, expect_list=True)

    @contextmanager
    def expect_shape(self, what: str) -> Iterator[None]:
        """Report a missing field or mistyped value in a reply as ``ProviderError``."""
        try:
            yield
        except (KeyError, TypeError, AttributeError) as e:
            raise ProviderError(f"{self.name}: unexpected {what} response: {e!r}") from e

    def exists(self, url: str, **kwargs: Any) -> bool:
        """Return True for a 2xx response, False for 404."""
        try:
            resp = self._client.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name}: GET {url} failed: {e}") from e
        if resp.status_code == 404:
            return False
        if resp.status_code >= 400:
            raise ProviderError(f"{self.name}: GET {url} returned {resp.status_code}")
        return True

    def close(self) -> None:
        """Close the HTTP client connection."""
        self._client.close()

    def __enter__(self) -> HTTPProvider:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
