"""Core entities shared by the scanner, planner, patcher and providers."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class DependencyKind(str, Enum):
    """How a dependency is pinned in its file."""

    MODULE = "module"  # ?ref=<version> on a module source
    IMAGE = "image"  # <name>:<tag> on an *_image assignment


@dataclass
class Repository:
    """A Git repository on any hosting provider."""

    name: str
    organization: str
    id: str = ""
    default_branch: str = "main"
    remote_url: str = ""
    ssh_url: str = ""
    provider_name: str = ""
    # Azure DevOps groups repositories into projects within an organization
    project: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.organization}/{self.name}"


@dataclass
class File:
    """A file entry within a repository tree."""

    path: str
    object_id: str = ""
    is_dir: bool = False


@dataclass(frozen=True)
class Dependency:
    """A versioned reference discovered in a file.

    ``source`` never carries the version; ``current_version`` is the token
    exactly as it appears in the file.
    """

    name: str
    source: str
    current_version: str
    file_path: str
    line: int
    kind: DependencyKind = DependencyKind.MODULE


@dataclass
class ScanResult:
    """A dependency together with the full text of its owning file."""

    dependency: Dependency
    file_content: str


@dataclass
class UpgradeTask:
    """One planned version bump."""

    dependency: Dependency
    new_version: str
    file_content: str

    @property
    def kind(self) -> DependencyKind:
        return self.dependency.kind


@dataclass
class FileChange:
    """A full-content file modification to include in a commit."""

    path: str
    content: str
    change_type: str = "edit"


@dataclass
class BranchInput:
    """Data needed to create a branch carrying file changes."""

    branch_name: str
    base_branch: str
    changes: list[FileChange] = field(default_factory=list)
    commit_message: str = ""


@dataclass
class PullRequestInput:
    """Data needed to open a pull/merge request."""

    source_branch: str
    target_branch: str
    title: str
    description: str
    auto_complete: bool = False


@dataclass
class PullRequest:
    """A pull/merge request returned by a provider."""

    id: int
    title: str
    url: str
    status: str = "open"


@dataclass
class UpdateOptions:
    """Runtime options passed to updaters."""

    dry_run: bool = False
    verbose: bool = False
    target_branch: str = ""
    auto_complete: bool = False
