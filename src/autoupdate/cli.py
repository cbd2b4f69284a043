"""CLI entry point.

    autoupdate run [--config PATH] [--dry-run]   # scan providers and open PRs
    autoupdate scan PATH [--json]                # list dependencies in a local tree
    autoupdate list [--outdated] [--output FMT]  # current vs. latest across providers
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path

from autoupdate.domain import Dependency

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Directories that hold downloaded module copies rather than source
SKIPPED_DIRS = {".terraform", ".terragrunt-cache", ".git"}


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format=LOG_FORMAT)


def scan_directory(root: Path) -> list[Dependency]:
    """Scan every ``.tf`` and ``.hcl`` file under ``root``.

    Paths in the result are relative to ``root``. Files are visited in sorted
    order so output is stable.
    """
    from autoupdate.terraform.scanner import scan

    deps: list[Dependency] = []
    for suffix in (".tf", ".hcl"):
        for path in sorted(root.rglob(f"*{suffix}")):
            if not path.is_file() or SKIPPED_DIRS.intersection(path.relative_to(root).parts):
                continue
            try:
                content = path.read_text()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Failed to read {path}: {e}")
                continue
            deps.extend(scan(content, path.relative_to(root).as_posix()))
    return deps


def print_dependencies_text(deps: list[Dependency]) -> None:
    if not deps:
        print("No Terraform dependencies found.")
        return
    for dep in deps:
        print(
            f"{dep.file_path}:{dep.line}  {dep.kind.value:<6} {dep.name}  "
            f"{dep.source} @ {dep.current_version}"
        )
    print(f"\nFound {len(deps)} dependencies")


def cmd_scan(args: argparse.Namespace) -> int:
    """List dependencies in a local directory.

    Returns:
        Exit code (0 for success, 2 if the path is not a directory).
    """
    root = Path(args.path).expanduser()
    if not root.is_dir():
        print(f"Error: not a directory: {args.path}", file=sys.stderr)
        return 2

    deps = scan_directory(root)
    if args.scan_json:
        print(json.dumps([{**asdict(d), "kind": d.kind.value} for d in deps], indent=2))
    else:
        print_dependencies_text(deps)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    """Run every enabled updater on every configured repository.

    Returns:
        Exit code (0 if no errors, 1 if any repository failed, 2 on config errors).
    """
    from autoupdate.config import ConfigError, load_config
    from autoupdate.service import RunOptions, UpdateService, format_run_summary

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    options = RunOptions(
        dry_run=args.dry_run,
        verbose=args.verbose,
        provider_name=args.provider or "",
        organization=args.org or "",
        repository=args.repo or "",
        updater_name=args.updater or "",
    )
    summary = UpdateService().run(config, options)
    print(format_run_summary(summary))
    return 1 if summary.errors else 0


def cmd_list(args: argparse.Namespace) -> int:
    """Show current and latest versions of every dependency in configured repositories.

    Returns:
        Exit code (0 if no errors, 1 if any repository failed, 2 on config errors).
    """
    from autoupdate.config import ConfigError, load_config
    from autoupdate.service import (
        RunOptions,
        UpdateService,
        format_dependency_markdown,
        format_dependency_table,
    )

    try:
        config = load_config(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    options = RunOptions(
        verbose=args.verbose,
        provider_name=args.provider or "",
        organization=args.org or "",
        repository=args.repo or "",
    )
    report = UpdateService().list_dependencies(config, options, outdated_only=args.outdated)

    if args.output == "json":
        print(json.dumps([asdict(d) for d in report.dependencies], indent=2))
    elif args.output == "markdown":
        print(format_dependency_markdown(report))
    else:
        print(format_dependency_table(report))
    return 1 if report.errors else 0


def build_parser() -> argparse.ArgumentParser:
    from autoupdate.version import get_version_info

    parser = argparse.ArgumentParser(
        prog="autoupdate",
        description="Upgrade Git-pinned Terraform modules and Terragrunt image tags",
    )
    parser.add_argument(
        "--version", action="version", version=get_version_info().format_full()
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    run_parser = subparsers.add_parser("run", help="Scan configured repositories and open PRs")
    run_parser.add_argument("--config", "-c", metavar="FILE", help="Config file path")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Report upgrades without creating PRs"
    )
    run_parser.add_argument("--provider", help="Only process this provider type")
    run_parser.add_argument("--org", help="Only process this organization")
    run_parser.add_argument("--repo", help="Only process this repository")
    run_parser.add_argument("--updater", help="Only run this updater")

    list_parser = subparsers.add_parser(
        "list", help="Show current and latest versions across configured repositories"
    )
    list_parser.add_argument("--config", "-c", metavar="FILE", help="Config file path")
    list_parser.add_argument(
        "--outdated", action="store_true", help="Only show dependencies with a newer version"
    )
    list_parser.add_argument(
        "--output",
        choices=("table", "json", "markdown"),
        default="table",
        help="Output format (default: table)",
    )
    list_parser.add_argument("--provider", help="Only process this provider type")
    list_parser.add_argument("--org", help="Only process this organization")
    list_parser.add_argument("--repo", help="Only process this repository")

    scan_parser = subparsers.add_parser("scan", help="List dependencies in a local directory")
    scan_parser.add_argument("path", nargs="?", default=".", help="Directory to scan")
    scan_parser.add_argument("--json", dest="scan_json", action="store_true", help="JSON output")

    return parser


def main() -> int:
    """Main entry point for the autoupdate CLI.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)

    if args.command == "run":
        return cmd_run(args)
    if args.command == "scan":
        return cmd_scan(args)
    if args.command == "list":
        return cmd_list(args)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
