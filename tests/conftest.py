"""Pytest configuration for autoupdate tests."""

from __future__ import annotations

from dataclasses import dataclass, field

import pytest

from autoupdate.domain import (
    BranchInput,
    File,
    PullRequest,
    PullRequestInput,
    Repository,
)
from autoupdate.providers.base import Provider, ProviderError


@dataclass
class StubProvider(Provider):
    """Configurable in-memory provider that records what it was asked to do.

    ``files`` maps path -> content for the repository under test; ``tags``
    maps repository name -> newest-first tags; ``*_error`` fields make the
    matching call raise ``ProviderError``.
    """

    name: str = "stub"
    repositories: list[Repository] = field(default_factory=list)
    files: dict[str, str] = field(default_factory=dict)
    tags: dict[str, list[str]] = field(default_factory=dict)
    unreadable: set[str] = field(default_factory=set)
    pr_exists: bool = False

    discover_error: bool = False
    list_error: bool = False
    tags_error: bool = False
    pr_exists_error: bool = False
    branch_error: bool = False
    pr_error: bool = False

    discover_calls: list[str] = field(default_factory=list)
    tag_calls: list[str] = field(default_factory=list)
    read_calls: list[str] = field(default_factory=list)
    branch_inputs: list[BranchInput] = field(default_factory=list)
    pr_inputs: list[PullRequestInput] = field(default_factory=list)

    def discover_repositories(self, organization: str) -> list[Repository]:
        self.discover_calls.append(organization)
        if self.discover_error:
            raise ProviderError("discover failed")
        return list(self.repositories)

    def list_files(self, repo: Repository, suffix: str = "") -> list[File]:
        if self.list_error:
            raise ProviderError("list failed")
        return [File(path=p) for p in self.files if p.endswith(suffix)]

    def get_file_content(self, repo: Repository, path: str) -> str:
        self.read_calls.append(path)
        if path in self.unreadable or path not in self.files:
            raise ProviderError(f"cannot read {path}")
        return self.files[path]

    def get_tags(self, repo: Repository) -> list[str]:
        self.tag_calls.append(repo.name)
        if self.tags_error:
            raise ProviderError("tags failed")
        return list(self.tags.get(repo.name, []))

    def has_file(self, repo: Repository, path: str) -> bool:
        return path in self.files

    def create_branch_with_changes(self, repo: Repository, branch: BranchInput) -> None:
        if self.branch_error:
            raise ProviderError("branch failed")
        self.branch_inputs.append(branch)

    def create_pull_request(self, repo: Repository, pr: PullRequestInput) -> PullRequest:
        if self.pr_error:
            raise ProviderError("pr failed")
        self.pr_inputs.append(pr)
        return PullRequest(id=len(self.pr_inputs), title=pr.title, url="https://example.test/pr/1")

    def pull_request_exists(self, repo: Repository, source_branch: str) -> bool:
        if self.pr_exists_error:
            raise ProviderError("pr lookup failed")
        return self.pr_exists


@pytest.fixture
def repo() -> Repository:
    """The repository being upgraded."""
    return Repository(name="infra-live", organization="acme", default_branch="main")


@pytest.fixture
def stub_provider(repo: Repository) -> StubProvider:
    """Provider whose organization holds the repo under test plus two module repos."""
    return StubProvider(
        repositories=[
            repo,
            Repository(name="mod-net", organization="acme"),
            Repository(name="mod-net-legacy", organization="acme"),
        ]
    )
