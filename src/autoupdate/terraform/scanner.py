"""Discover module and container image references in Terraform/Terragrunt files.

Two strategies are used for ``.tf`` files: a structured HCL parse via
``python-hcl2``, and a regex scan used whenever the structured parse cannot
be trusted (syntax error, non-literal ``source``). ``.hcl`` Terragrunt files
are always scanned with a regex for ``<id>_image = "<name>:<tag>"``
assignments.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from enum import Enum
from pathlib import PurePosixPath
from typing import Any

import hcl2

from autoupdate.domain import Dependency, DependencyKind
from autoupdate.terraform.versions import is_semver_like

logger = logging.getLogger(__name__)


class FileFormat(str, Enum):
    TERRAFORM = "terraform"  # .tf, module blocks
    TERRAGRUNT = "terragrunt"  # .hcl, image assignments


# Prefixes and fragments that mark a version-controlled module source
GIT_PREFIXES = ("git::", "git@")
GIT_FRAGMENTS = ("github.com", "gitlab.com", "bitbucket.org", "dev.azure.com", "_git/")

MODULE_BLOCK_RE = re.compile(r'module\s+"([^"]+)"\s*\{[^}]*?source\s*=\s*"([^"]+)"', re.DOTALL)
IMAGE_ASSIGNMENT_RE = re.compile(r'(\w+_image)\s*=\s*"([a-zA-Z0-9][a-zA-Z0-9._-]*):([^"]+)"')

# `ref` only as a whole query parameter, never the tail of `myref=` or `xref=`
_REF_PARAM_RE = re.compile(r"[?&]ref=([^&\s\"]+)")


class StructuredParseError(Exception):
    """The structured parse produced nothing trustworthy; rescan with regex."""


def format_for_path(file_path: str) -> FileFormat | None:
    """Pick the scanning strategy from a file's suffix."""
    suffix = PurePosixPath(file_path).suffix
    if suffix == ".tf":
        return FileFormat.TERRAFORM
    if suffix == ".hcl":
        return FileFormat.TERRAGRUNT
    return None


def line_number(content: str, offset: int) -> int:
    """1-based line of ``offset`` within ``content``."""
    return content.count("\n", 0, offset) + 1


# --- source helpers ---


def is_git_module(source: str) -> bool:
    """Return True if a module source points at a Git repository."""
    return source.startswith(GIT_PREFIXES) or any(frag in source for frag in GIT_FRAGMENTS)


def extract_version(source: str) -> str:
    """Return the ``ref`` query value of a module source, or ``""``."""
    match = _REF_PARAM_RE.search(source)
    return match.group(1) if match else ""


def remove_version_from_source(source: str) -> str:
    """Drop the ``ref`` parameter from a source, keeping other query params."""
    base, sep, query = source.partition("?")
    if not sep:
        return source
    params = [p for p in query.split("&") if p and not p.startswith("ref=")]
    if not params:
        return base
    return f"{base}?{'&'.join(params)}"


def _module_dependency(name: str, source: str, file_path: str, line: int) -> Dependency | None:
    if not is_git_module(source):
        return None
    version = extract_version(source)
    if not version:
        return None
    return Dependency(
        name=name,
        source=remove_version_from_source(source),
        current_version=version,
        file_path=file_path,
        line=line,
        kind=DependencyKind.MODULE,
    )


# --- structured strategy ---


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] == '"':
        return value[1:-1]
    return value


def _literal_source(body: dict[str, Any]) -> str | None:
    if "source" not in body:
        return None
    value = body["source"]
    # Older python-hcl2 releases wrap attribute values in a one-element list
    if isinstance(value, list) and len(value) == 1:
        value = value[0]
    if not isinstance(value, str):
        raise StructuredParseError("module source is not a string")
    value = _unquote(value)
    if "${" in value:
        raise StructuredParseError("module source is not a literal")
    return value


def _block_line(content: str, name: str) -> int:
    pattern = r'^[ \t]*(module)\s+"' + re.escape(name) + r'"'
    match = re.search(pattern, content, re.MULTILINE)
    return line_number(content, match.start(1)) if match else 0


def scan_structured(content: str, file_path: str) -> list[Dependency]:
    """Extract module dependencies from a parsed HCL document.

    Raises:
        StructuredParseError: If the document does not parse or a module
            ``source`` is not a literal string.
    """
    try:
        document = hcl2.loads(content)
    except Exception as e:
        raise StructuredParseError(f"failed to parse {file_path}: {e}") from e

    deps: list[Dependency] = []
    for block in document.get("module", []):
        if not isinstance(block, dict):
            raise StructuredParseError("unexpected module block shape")
        for label, body in block.items():
            if not isinstance(body, dict):
                raise StructuredParseError("unexpected module body shape")
            name = _unquote(label)
            source = _literal_source(body)
            if source is None:
                continue
            dep = _module_dependency(name, source, file_path, _block_line(content, name))
            if dep is not None:
                deps.append(dep)
    return deps


# --- regex strategies ---


def iter_modules_regex(content: str, file_path: str) -> Iterator[Dependency]:
    """Yield module dependencies found by pattern matching."""
    for match in MODULE_BLOCK_RE.finditer(content):
        dep = _module_dependency(
            match.group(1), match.group(2), file_path, line_number(content, match.start())
        )
        if dep is not None:
            yield dep


def iter_images(content: str, file_path: str) -> Iterator[Dependency]:
    """Yield container image references with semver-shaped tags."""
    for match in IMAGE_ASSIGNMENT_RE.finditer(content):
        var_name, image, tag = match.groups()
        if not is_semver_like(tag):
            continue
        yield Dependency(
            name=var_name,
            source=image,
            current_version=tag,
            file_path=file_path,
            line=line_number(content, match.start()),
            kind=DependencyKind.IMAGE,
        )


# --- entry points ---


def iter_dependencies(
    content: str, file_path: str, file_format: FileFormat | None = None
) -> Iterator[Dependency]:
    """Lazily yield the dependencies declared in one file."""
    file_format = file_format or format_for_path(file_path)

    if file_format is FileFormat.TERRAGRUNT:
        yield from iter_images(content, file_path)
        return
    if file_format is not FileFormat.TERRAFORM:
        return

    try:
        structured = scan_structured(content, file_path)
    except StructuredParseError as e:
        logger.debug(f"Falling back to regex scan: {e}")
        yield from iter_modules_regex(content, file_path)
        return
    yield from structured


def scan(content: str, file_path: str, file_format: FileFormat | None = None) -> list[Dependency]:
    """Return every dependency declared in ``content``, in file order."""
    return list(iter_dependencies(content, file_path, file_format))
