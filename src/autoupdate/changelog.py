"""Insert entries into a Keep a Changelog formatted CHANGELOG.md.

Entries go under ``## [Unreleased]`` / ``### Changed``. A changelog without
an Unreleased section is left untouched.
"""

from __future__ import annotations

CHANGELOG_PATH = "CHANGELOG.md"

UNRELEASED_HEADINGS = ("## [Unreleased]", "## Unreleased")
CHANGED_SUBHEADING = "### Changed"
H2_PREFIX = "## "
BULLET_PREFIXES = ("- ", "* ")


def find_unreleased(lines: list[str]) -> int:
    """Index of the Unreleased heading, or -1."""
    for i, line in enumerate(lines):
        if line.strip() in UNRELEASED_HEADINGS:
            return i
    return -1


def find_next_h2(lines: list[str], start: int) -> int:
    """Index of the next top-level heading after ``start``, or ``len(lines)``."""
    for i in range(start + 1, len(lines)):
        if lines[i].strip().startswith(H2_PREFIX):
            return i
    return len(lines)


def find_changed(lines: list[str], start: int, end: int) -> int:
    """Index of ``### Changed`` between ``start`` and ``end``, or -1."""
    for i in range(start + 1, end):
        if lines[i].strip() == CHANGED_SUBHEADING:
            return i
    return -1


def find_last_bullet(lines: list[str], changed: int, end: int) -> int:
    """Index of the last bullet in the run following ``changed``.

    Blank lines between bullets are skipped; any other line ends the run.
    Returns ``changed`` itself when the subsection has no bullets.
    """
    last = changed
    for i in range(changed + 1, end):
        stripped = lines[i].strip()
        if not stripped:
            continue
        if stripped.startswith(BULLET_PREFIXES):
            last = i
            continue
        break
    return last


def insert_entries(content: str, entries: list[str]) -> str:
    """Return ``content`` with ``entries`` added to the Unreleased/Changed section."""
    if not entries:
        return content

    # Keep the file's own line endings
    newline = "\r\n" if "\r\n" in content else "\n"
    lines = content.split(newline)
    unreleased = find_unreleased(lines)
    if unreleased < 0:
        return content

    end = find_next_h2(lines, unreleased)
    changed = find_changed(lines, unreleased, end)

    if changed >= 0:
        at = find_last_bullet(lines, changed, end) + 1
        lines[at:at] = entries
    else:
        lines[unreleased + 1 : unreleased + 1] = ["", CHANGED_SUBHEADING, "", *entries]

    return newline.join(lines)
