"""Rewrite version tokens in file text, touching nothing else.

Each task performs at most one substitution. Module references try three
strategies in order, each more permissive than the last:

1. the exact ``source?ref=<old>`` string,
2. the ``ref=<old>`` inside the ``module "<name>"`` block,
3. any ``?ref=<old>`` / ``&ref=<old>`` in the file.

Image references try the exact ``<image>:<old>`` string, then the
``<var> = "<image>:<old>"`` assignment.
"""

from __future__ import annotations

import logging
import re

from autoupdate.domain import Dependency, DependencyKind, FileChange, UpgradeTask

logger = logging.getLogger(__name__)

# A version token ends where these characters stop
_VERSION_END = r"(?![\w.+\-])"
# A locator or image name must not be the tail of a longer one
_NAME_START = r"(?<![\w.\-/:])"


def build_source_with_version(source: str, version: str) -> str:
    """Append (or replace) the ``ref`` parameter on a module source."""
    if "?ref=" in source:
        return re.sub(r"\?ref=[^&\"\s]+", lambda _: "?ref=" + version, source)
    if "?" in source:
        return f"{source}&ref={version}"
    return f"{source}?ref={version}"


def _sub_once(pattern: str, replacement, content: str) -> tuple[str, bool]:
    new_content, count = re.subn(pattern, replacement, content, count=1, flags=re.DOTALL)
    return new_content, count > 0


def _replace_literal(content: str, old: str, new: str) -> tuple[str, bool]:
    return _sub_once(_NAME_START + re.escape(old) + _VERSION_END, lambda _: new, content)


def apply_module_upgrade(content: str, dep: Dependency, new_version: str) -> str:
    """Bump the ``ref`` of one module reference."""
    old_source = build_source_with_version(dep.source, dep.current_version)
    new_source = build_source_with_version(dep.source, new_version)
    content_out, done = _replace_literal(content, old_source, new_source)
    if done:
        return content_out

    old = re.escape(dep.current_version)
    block_pattern = (
        r'(module\s+"' + re.escape(dep.name) + r'"\s*\{[^}]*?source\s*=\s*"[^"]*?[?&]ref=)'
        + old
        + r'(?=[&"\s])'
    )
    content_out, done = _sub_once(block_pattern, lambda m: m.group(1) + new_version, content)
    if done:
        return content_out

    loose_pattern = r"([?&]ref=)" + old + r'(?=[&"\s]|$)'
    content_out, done = _sub_once(loose_pattern, lambda m: m.group(1) + new_version, content)
    if done:
        logger.debug(f"Used loose ref match for module {dep.name} in {dep.file_path}")
        return content_out

    logger.warning(f"Could not locate module {dep.name}@{dep.current_version} in {dep.file_path}")
    return content


def apply_image_upgrade(content: str, dep: Dependency, new_version: str) -> str:
    """Bump the tag of one ``<name>:<tag>`` image reference."""
    old = f"{dep.source}:{dep.current_version}"
    new = f"{dep.source}:{new_version}"
    content_out, done = _replace_literal(content, old, new)
    if done:
        return content_out

    assignment_pattern = (
        r"(\b"
        + re.escape(dep.name)
        + r'\s*=\s*"'
        + re.escape(dep.source)
        + r":)"
        + re.escape(dep.current_version)
        + r'(?=")'
    )
    content_out, done = _sub_once(assignment_pattern, lambda m: m.group(1) + new_version, content)
    if done:
        return content_out

    logger.warning(f"Could not locate image {old} in {dep.file_path}")
    return content


def apply_upgrade(content: str, task: UpgradeTask) -> str:
    """Apply one task to ``content``, dispatching on dependency kind."""
    if task.kind is DependencyKind.IMAGE:
        return apply_image_upgrade(content, task.dependency, task.new_version)
    return apply_module_upgrade(content, task.dependency, task.new_version)


def patch_files(tasks: list[UpgradeTask]) -> tuple[list[FileChange], list[UpgradeTask]]:
    """Fold all tasks into one edit per file.

    The first task for a path seeds its text; later tasks for the same path
    see the already-patched text. Paths keep first-seen order.

    Returns the changed files and the tasks that actually altered text. A
    task whose reference could not be located is dropped, and a file left
    identical to its seed produces no change.
    """
    seeds: dict[str, str] = {}
    buffers: dict[str, str] = {}
    applied: list[UpgradeTask] = []
    for task in tasks:
        path = task.dependency.file_path
        if path not in buffers:
            seeds[path] = buffers[path] = task.file_content
        patched = apply_upgrade(buffers[path], task)
        if patched != buffers[path]:
            applied.append(task)
            buffers[path] = patched

    changes = [
        FileChange(path=path, content=content)
        for path, content in buffers.items()
        if content != seeds[path]
    ]
    return changes, applied


def apply_upgrades(tasks: list[UpgradeTask]) -> list[FileChange]:
    """Return one edit per file that the tasks actually change."""
    changes, _ = patch_files(tasks)
    return changes
