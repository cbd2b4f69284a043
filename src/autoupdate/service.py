"""Orchestrates provider -> organization -> repository -> updater processing."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from autoupdate.config import Config
from autoupdate.domain import PullRequest, Repository, UpdateOptions
from autoupdate.providers.base import Provider, ProviderError
from autoupdate.providers.registry import ProviderRegistry, default_registry
from autoupdate.terraform.resolver import TagResolver, extract_repo_name
from autoupdate.terraform.updater import TerraformUpdater, UpdaterError
from autoupdate.terraform.versions import is_newer, upgrade_kind

logger = logging.getLogger(__name__)


class Updater(Protocol):
    """A dependency ecosystem that can upgrade a repository."""

    name: str

    def detect(self, provider: Provider, repo: Repository) -> bool: ...

    def create_update_prs(
        self, provider: Provider, repo: Repository, options: UpdateOptions
    ) -> list[PullRequest]: ...


@dataclass
class RunOptions:
    """CLI-level filters for a single run."""

    dry_run: bool = False
    verbose: bool = False
    provider_name: str = ""
    organization: str = ""
    repository: str = ""
    updater_name: str = ""


@dataclass
class RunSummary:
    """Totals for one run."""

    repositories: int = 0
    pull_requests: list[PullRequest] = field(default_factory=list)
    errors: int = 0


@dataclass
class DependencyStatus:
    """One dependency with the newest version its source repository offers."""

    organization: str
    repository: str
    name: str
    source: str  # name of the repository the version is looked up in
    kind: str
    current_version: str
    latest_version: str
    file_path: str
    needs_upgrade: bool = False
    upgrade_kind: str = ""


@dataclass
class DependencyReport:
    """Result of listing dependencies across every configured repository."""

    repositories: int = 0
    dependencies: list[DependencyStatus] = field(default_factory=list)
    errors: int = 0

    @property
    def outdated(self) -> int:
        return sum(1 for d in self.dependencies if d.needs_upgrade)


class UpdateService:
    """Discover repositories on every configured provider and run updaters on them.

    A failure in one provider, organization or repository is logged and
    counted; processing continues with the next one.
    """

    def __init__(
        self,
        registry: ProviderRegistry | None = None,
        updaters: list[Updater] | None = None,
    ):
        self.registry = registry or default_registry()
        self.updaters: list[Updater] = updaters if updaters is not None else [TerraformUpdater()]

    def iter_repositories(
        self, config: Config, options: RunOptions, totals: RunSummary | DependencyReport
    ) -> Iterator[tuple[Provider, Repository]]:
        """Yield every repository the filters select, with the provider that serves it.

        Failures are logged and added to ``totals.errors``; each yielded
        repository is added to ``totals.repositories``. A provider is closed
        once its organizations are exhausted.
        """
        for provider_cfg in config.providers:
            if options.provider_name and provider_cfg.type != options.provider_name:
                continue

            try:
                provider = self.registry.get(
                    provider_cfg.type, provider_cfg.token, base_url=provider_cfg.base_url or None
                )
            except ProviderError as e:
                logger.error(f"Failed to initialize provider {provider_cfg.type!r}: {e}")
                totals.errors += 1
                continue

            logger.info(f"Processing provider: {provider.name}")
            try:
                for org in provider_cfg.organizations:
                    if options.organization and org != options.organization:
                        continue

                    logger.info(f"Discovering repositories in {org!r}...")
                    try:
                        repos = provider.discover_repositories(org)
                    except ProviderError as e:
                        logger.error(f"Failed to discover repos in {org!r}: {e}")
                        totals.errors += 1
                        continue

                    logger.info(f"Found {len(repos)} repositories in {org!r}")

                    for repo in repos:
                        if options.repository and repo.name != options.repository:
                            continue
                        totals.repositories += 1
                        yield provider, repo
            finally:
                provider.close()

    def run(self, config: Config, options: RunOptions | None = None) -> RunSummary:
        options = options or RunOptions()
        summary = RunSummary()

        for provider, repo in self.iter_repositories(config, options, summary):
            prs, errors = self.process_repository(provider, repo, config, options)
            summary.pull_requests.extend(prs)
            summary.errors += errors

        logger.info(
            f"Run complete: {summary.repositories} repos processed, "
            f"{len(summary.pull_requests)} PRs created, {summary.errors} errors"
        )
        return summary

    def process_repository(
        self,
        provider: Provider,
        repo: Repository,
        config: Config,
        options: RunOptions,
    ) -> tuple[list[PullRequest], int]:
        """Run every applicable updater on one repository."""
        created: list[PullRequest] = []
        errors = 0

        for updater in self.updaters:
            if options.updater_name and updater.name != options.updater_name:
                continue

            settings = config.updater(updater.name)
            if not settings.enabled:
                continue

            if not updater.detect(provider, repo):
                continue

            logger.info(f"[{updater.name}] Detected in {repo.full_name}")

            update_options = UpdateOptions(
                dry_run=options.dry_run,
                verbose=options.verbose,
                target_branch=settings.target_branch,
                auto_complete=settings.auto_complete,
            )

            try:
                prs = updater.create_update_prs(provider, repo, update_options)
            except (ProviderError, UpdaterError) as e:
                logger.error(f"[{updater.name}] Failed to update {repo.full_name}: {e}")
                errors += 1
                continue

            for pr in prs:
                logger.info(f"  Created PR #{pr.id}: {pr.title} ({pr.url})")
            created.extend(prs)

        return created, errors

    def list_dependencies(
        self, config: Config, options: RunOptions | None = None, outdated_only: bool = False
    ) -> DependencyReport:
        """Report current and latest versions of every dependency; changes nothing."""
        options = options or RunOptions()
        report = DependencyReport()
        terraform = TerraformUpdater()
        resolver: TagResolver | None = None

        for provider, repo in self.iter_repositories(config, options, report):
            scanned = terraform.scan_repository(provider, repo)
            if not scanned:
                continue

            # Tag listings are shared by every repository of one organization
            if (
                resolver is None
                or resolver.provider is not provider
                or resolver.current_repo.organization != repo.organization
            ):
                resolver = TagResolver(provider, repo)

            for result in scanned:
                dep = result.dependency
                tags = resolver.resolve(dep.source)
                latest = tags[0] if tags else ""
                needs_upgrade = (
                    bool(latest)
                    and latest != dep.current_version
                    and is_newer(dep.current_version, latest)
                )
                if outdated_only and not needs_upgrade:
                    continue
                report.dependencies.append(
                    DependencyStatus(
                        organization=repo.organization,
                        repository=repo.name,
                        name=dep.name,
                        source=extract_repo_name(dep.source),
                        kind=dep.kind.value,
                        current_version=dep.current_version,
                        latest_version=latest,
                        file_path=dep.file_path,
                        needs_upgrade=needs_upgrade,
                        upgrade_kind=upgrade_kind(dep.current_version, latest)
                        if needs_upgrade
                        else "",
                    )
                )

        logger.info(
            f"Listed {len(report.dependencies)} dependencies in "
            f"{report.repositories} repositories, {report.errors} errors"
        )
        return report


def format_run_summary(summary: RunSummary) -> str:
    """Format a run summary for display."""
    lines = ["## Dependency Update Results", ""]

    if summary.pull_requests:
        lines.append("### ✓ PRs Created")
        for pr in summary.pull_requests:
            lines.append(f"- #{pr.id} {pr.title}")
            if pr.url:
                lines.append(f"  - <{pr.url}>")
        lines.append("")

    lines.append(
        f"**Summary:** {summary.repositories} repositories, "
        f"{len(summary.pull_requests)} PRs created, {summary.errors} errors"
    )
    return "\n".join(lines)


def dependency_state(status: DependencyStatus) -> str:
    """Short status label: ``up to date``, ``major update``, ..."""
    if not status.needs_upgrade:
        return "up to date"
    return f"{status.upgrade_kind or 'version'} update"


LIST_COLUMNS = ("Organization", "Repository", "Module", "Source", "Current", "Latest", "Status")
# Widest a free-text column may grow before it is cut with "..."
MAX_COLUMN_WIDTH = 40


def _cells(status: DependencyStatus) -> list[str]:
    return [
        status.organization,
        status.repository,
        status.name,
        status.source,
        status.current_version,
        status.latest_version or "N/A",
        dependency_state(status),
    ]


def _truncate(text: str, width: int) -> str:
    return text if len(text) <= width else text[: width - 3] + "..."


def format_dependency_table(report: DependencyReport) -> str:
    """Plain-text aligned table with a totals line."""
    if not report.dependencies:
        return "No Terraform dependencies found."

    rows = [[_truncate(c, MAX_COLUMN_WIDTH) for c in _cells(d)] for d in report.dependencies]
    widths = [max(len(col), *(len(row[i]) for row in rows)) for i, col in enumerate(LIST_COLUMNS)]

    def line(cells: list[str] | tuple[str, ...]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()

    lines = [line(LIST_COLUMNS), "-" * (sum(widths) + 2 * (len(widths) - 1))]
    lines.extend(line(row) for row in rows)
    lines.append("")
    lines.append(f"Total: {len(report.dependencies)} dependencies, {report.outdated} outdated")
    return "\n".join(lines)


def format_dependency_markdown(report: DependencyReport) -> str:
    """Markdown table of every listed dependency."""
    if not report.dependencies:
        return "No Terraform dependencies found."

    lines = [
        "| " + " | ".join(LIST_COLUMNS) + " |",
        "|" + "|".join("---" for _ in LIST_COLUMNS) + "|",
    ]
    lines.extend("| " + " | ".join(_cells(d)) + " |" for d in report.dependencies)
    return "\n".join(lines)
