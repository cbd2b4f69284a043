"""Turn scan results plus resolved tags into an ordered list of upgrade tasks."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from autoupdate.domain import ScanResult, UpgradeTask
from autoupdate.terraform.versions import is_newer


def plan_upgrades(
    scanned: Iterable[ScanResult], resolve: Callable[[str], list[str]]
) -> list[UpgradeTask]:
    """Plan one task per dependency that has a strictly newer tag.

    ``resolve`` is called once per distinct source; tasks keep scan order.
    """
    scanned = list(scanned)
    versions: dict[str, list[str]] = {}
    for result in scanned:
        source = result.dependency.source
        if source not in versions:
            versions[source] = resolve(source)

    tasks = []
    for result in scanned:
        dep = result.dependency
        tags = versions[dep.source]
        if not tags:
            continue
        latest = tags[0]
        if latest == dep.current_version:
            continue
        if not is_newer(dep.current_version, latest):
            continue
        tasks.append(
            UpgradeTask(dependency=dep, new_version=latest, file_content=result.file_content)
        )
    return tasks
