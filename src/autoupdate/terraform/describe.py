"""Branch names, commit messages, PR titles/descriptions and changelog lines."""

from __future__ import annotations

from autoupdate.domain import DependencyKind, UpgradeTask
from autoupdate.terraform.resolver import extract_repo_name

# Above this many upgrades the PR description switches to a count summary
MAX_DETAILED_UPGRADES = 5

BRANCH_SINGLE_FMT = "chore/upgrade-{name}-{version}"
BRANCH_BATCH_FMT = "chore/upgrade-{count}-dependencies"
BATCH_SUBJECT_FMT = "chore(deps): upgraded {count} Terraform dependencies"

FOOTER = "*This PR was automatically created by autoupdate*"

KIND_LABELS = {
    DependencyKind.MODULE: "module",
    DependencyKind.IMAGE: "image",
}

CHANGELOG_LABELS = {
    DependencyKind.MODULE: "Terraform module",
    DependencyKind.IMAGE: "container image",
}


def short_name(task: UpgradeTask) -> str:
    return extract_repo_name(task.dependency.source)


def generate_branch_name(tasks: list[UpgradeTask]) -> str:
    if len(tasks) == 1:
        return BRANCH_SINGLE_FMT.format(name=short_name(tasks[0]), version=tasks[0].new_version)
    return BRANCH_BATCH_FMT.format(count=len(tasks))


def generate_commit_message(tasks: list[UpgradeTask]) -> str:
    if len(tasks) == 1:
        task = tasks[0]
        return (
            f"chore(deps): upgraded `{short_name(task)}` "
            f"from `{task.dependency.current_version}` to `{task.new_version}`"
        )
    return BATCH_SUBJECT_FMT.format(count=len(tasks))


def generate_pr_title(tasks: list[UpgradeTask]) -> str:
    if len(tasks) == 1:
        return f"chore(deps): upgraded `{short_name(tasks[0])}` to `{tasks[0].new_version}`"
    return BATCH_SUBJECT_FMT.format(count=len(tasks))


def count_by_kind(tasks: list[UpgradeTask]) -> tuple[int, int]:
    """Return ``(module_count, image_count)``."""
    images = sum(1 for t in tasks if t.kind is DependencyKind.IMAGE)
    return len(tasks) - images, images


def generate_pr_description(tasks: list[UpgradeTask]) -> str:
    """Markdown PR body: a table for small batches, a count summary otherwise."""
    lines = ["## Summary", ""]

    if len(tasks) <= MAX_DETAILED_UPGRADES:
        lines.append("This PR upgrades the following Terraform dependencies:")
        lines.append("")
        lines.append("| Name | Type | Current Version | New Version | File |")
        lines.append("|------|------|-----------------|-------------|------|")
        for task in tasks:
            dep = task.dependency
            lines.append(
                f"| {short_name(task)} | {KIND_LABELS[dep.kind]} | {dep.current_version} "
                f"| {task.new_version} | {dep.file_path} |"
            )
    else:
        modules, images = count_by_kind(tasks)
        lines.append(f"This PR upgrades **{len(tasks)}** Terraform dependencies:")
        lines.append("")
        if modules:
            lines.append(f"- **{modules}** module upgrades")
        if images:
            lines.append(f"- **{images}** container image upgrades")

    lines.extend(["", "---", FOOTER, ""])
    return "\n".join(lines)


def changelog_entries(tasks: list[UpgradeTask]) -> list[str]:
    """One Keep a Changelog bullet per upgrade."""
    return [
        f"- changed the {CHANGELOG_LABELS[t.kind]} {short_name(t)} "
        f"from {t.dependency.current_version} to {t.new_version}"
        for t in tasks
    ]
