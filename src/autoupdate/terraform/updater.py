"""Terraform/Terragrunt updater: scan, plan, patch and open a single PR per repository.

Everything happens through the provider API; no local clone is required.
"""

from __future__ import annotations

import logging

from autoupdate.changelog import CHANGELOG_PATH, insert_entries
from autoupdate.domain import (
    BranchInput,
    FileChange,
    PullRequest,
    PullRequestInput,
    Repository,
    ScanResult,
    UpdateOptions,
    UpgradeTask,
)
from autoupdate.providers.base import Provider, ProviderError
from autoupdate.terraform import describe
from autoupdate.terraform.patcher import patch_files
from autoupdate.terraform.planner import plan_upgrades
from autoupdate.terraform.resolver import TagResolver, extract_repo_name
from autoupdate.terraform.scanner import FileFormat, scan

logger = logging.getLogger(__name__)

UPDATER_NAME = "terraform"

# Suffix to scan and the format each one is scanned as, in traversal order
SCANNED_SUFFIXES = ((".tf", FileFormat.TERRAFORM), (".hcl", FileFormat.TERRAGRUNT))


class UpdaterError(Exception):
    """Raised when branch or pull request creation fails."""

    pass


class TerraformUpdater:
    """Upgrade Git-pinned Terraform modules and Terragrunt image tags."""

    name = UPDATER_NAME

    def detect(self, provider: Provider, repo: Repository) -> bool:
        """Return True if the repository has any ``.tf`` or ``.hcl`` file."""
        for suffix, _ in SCANNED_SUFFIXES:
            try:
                if provider.list_files(repo, suffix):
                    return True
            except ProviderError as e:
                logger.debug(f"[terraform] Could not list {suffix} files in {repo.full_name}: {e}")
        return False

    def scan_repository(self, provider: Provider, repo: Repository) -> list[ScanResult]:
        """Scan every ``.tf`` then every ``.hcl`` file for dependencies."""
        results: list[ScanResult] = []
        for suffix, file_format in SCANNED_SUFFIXES:
            try:
                files = provider.list_files(repo, suffix)
            except ProviderError as e:
                logger.warning(f"[terraform] Failed to list {suffix} files: {e}")
                continue

            for f in files:
                if f.is_dir:
                    continue
                try:
                    content = provider.get_file_content(repo, f.path)
                except ProviderError as e:
                    logger.warning(f"[terraform] Failed to read {f.path}: {e}")
                    continue
                results.extend(
                    ScanResult(dependency=dep, file_content=content)
                    for dep in scan(content, f.path, file_format)
                )
        return results

    def plan(self, provider: Provider, repo: Repository) -> list[UpgradeTask]:
        """Scan the repository and return the upgrades to perform."""
        scanned = self.scan_repository(provider, repo)
        if not scanned:
            return []
        resolver = TagResolver(provider, repo)
        return plan_upgrades(scanned, resolver.resolve)

    def create_update_prs(
        self, provider: Provider, repo: Repository, options: UpdateOptions
    ) -> list[PullRequest]:
        """Open one PR upgrading every outdated dependency in ``repo``.

        Raises:
            UpdaterError: If the branch or the pull request cannot be created.
        """
        logger.info(f"[terraform] Scanning {repo.full_name} for Terraform dependencies")

        tasks = self.plan(provider, repo)
        if not tasks:
            logger.info(f"[terraform] {repo.full_name}: all Terraform dependencies up to date")
            return []

        logger.info(f"[terraform] {repo.full_name}: found {len(tasks)} dependencies to upgrade")

        if options.dry_run:
            for task in tasks:
                logger.info(
                    f"[terraform] [DRY RUN] Would upgrade "
                    f"{extract_repo_name(task.dependency.source)}: "
                    f"{task.dependency.current_version} -> {task.new_version}"
                )
            return []

        return self._open_pull_request(provider, repo, options, tasks)

    def _open_pull_request(
        self,
        provider: Provider,
        repo: Repository,
        options: UpdateOptions,
        tasks: list[UpgradeTask],
    ) -> list[PullRequest]:
        changes, tasks = patch_files(tasks)
        if not tasks:
            logger.warning(
                f"[terraform] {repo.full_name}: no planned upgrade could be applied, skipping PR"
            )
            return []

        branch_name = describe.generate_branch_name(tasks)

        try:
            exists = provider.pull_request_exists(repo, branch_name)
        except ProviderError as e:
            logger.warning(f"[terraform] Failed to check existing PRs: {e}")
            exists = False
        if exists:
            logger.info(f"[terraform] PR already exists for branch {branch_name!r}, skipping")
            return []

        changes = self._append_changelog(provider, repo, tasks, changes)

        target_branch = options.target_branch or repo.default_branch

        try:
            provider.create_branch_with_changes(
                repo,
                BranchInput(
                    branch_name=branch_name,
                    base_branch=target_branch,
                    changes=changes,
                    commit_message=describe.generate_commit_message(tasks),
                ),
            )
        except ProviderError as e:
            raise UpdaterError(f"failed to create branch {branch_name}: {e}") from e

        try:
            pr = provider.create_pull_request(
                repo,
                PullRequestInput(
                    source_branch=branch_name,
                    target_branch=target_branch,
                    title=describe.generate_pr_title(tasks),
                    description=describe.generate_pr_description(tasks),
                    auto_complete=options.auto_complete,
                ),
            )
        except ProviderError as e:
            raise UpdaterError(f"failed to create PR: {e}") from e

        logger.info(f"[terraform] Created PR #{pr.id} for {repo.full_name}: {pr.url}")
        return [pr]

    def _append_changelog(
        self,
        provider: Provider,
        repo: Repository,
        tasks: list[UpgradeTask],
        changes: list[FileChange],
    ) -> list[FileChange]:
        """Add a CHANGELOG.md edit when the repository keeps one."""
        try:
            if not provider.has_file(repo, CHANGELOG_PATH):
                return changes
            content = provider.get_file_content(repo, CHANGELOG_PATH)
        except ProviderError as e:
            logger.warning(f"[terraform] Failed to read {CHANGELOG_PATH}: {e}")
            return changes

        modified = insert_entries(content, describe.changelog_entries(tasks))
        if modified == content:
            return changes
        return [*changes, FileChange(path=CHANGELOG_PATH, content=modified)]
