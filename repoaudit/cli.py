"""CLI entry point for repoaudit."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from typing import Optional

from repoaudit import __version__
from repoaudit.config import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_DIRS,
    DEFAULT_TIMEOUT,
    DEFAULT_WORKERS,
    DEPTH_RANGE,
    DIRS_RANGE,
    ScanConfig,
    fixed_drives,
    load_config,
    save_config,
    validate_config,
)
from repoaudit.errors import ConfigError, GitNotFoundError
from repoaudit.log import setup_logging, stderr_console
from repoaudit.pipeline import run_audit
from repoaudit.report import Report
from repoaudit.scanner import Discovery

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_NO_GIT = 3

_logger = logging.getLogger(__name__)


def _bounded_int(lo: int, hi: int):
    def parse(value: str) -> int:
        try:
            n = int(value.replace("_", "").replace(",", ""))
        except ValueError:
            raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
        if not lo <= n <= hi:
            raise argparse.ArgumentTypeError(f"must be between {lo:,} and {hi:,}")
        return n
    return parse


def _positive_float(value: str) -> float:
    try:
        n = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a number, got {value!r}")
    if n <= 0:
        raise argparse.ArgumentTypeError("must be positive")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repoaudit",
        description="Find git repositories and report branch, upstream, push and dirty state.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Directories to scan for git repos (default: current directory)",
    )
    parser.add_argument(
        "--all-drives",
        action="store_true",
        default=None,
        help="Scan every fixed drive instead of PATHs",
    )
    parser.add_argument(
        "--max-depth",
        type=_bounded_int(*DEPTH_RANGE),
        metavar="N",
        help=f"Deepest directory level the bounded scan descends to (default: {DEFAULT_MAX_DEPTH})",
    )
    parser.add_argument(
        "--max-dirs",
        type=_bounded_int(*DIRS_RANGE),
        metavar="N",
        help=f"Stop the bounded scan after visiting N directories (default: {DEFAULT_MAX_DIRS:,})",
    )
    parser.add_argument(
        "--follow-junctions",
        action="store_false",
        dest="skip_junctions",
        default=None,
        help="Descend into symlinked and junction directories",
    )
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="NAME",
        help="Directory name to skip; repeatable, replaces the default list",
    )
    parser.add_argument(
        "--local",
        action="store_true",
        dest="local_mode",
        default=None,
        help="Offline mode: skip origin, ahead/behind and push checks",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        default=None,
        help="Suppress progress output",
    )
    parser.add_argument(
        "--show-nested",
        action="store_true",
        default=None,
        help="Report repos that live inside another repo",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_float,
        dest="query_timeout",
        metavar="SECONDS",
        help=f"Per git query timeout (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "--workers",
        type=_bounded_int(1, 64),
        metavar="N",
        help=f"Repos analyzed in parallel (default: {DEFAULT_WORKERS})",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Load settings from a JSON config file",
    )
    parser.add_argument(
        "--write-config",
        metavar="FILE",
        help="Write a config file with generated defaults and exit",
    )
    parser.add_argument(
        "--csv",
        metavar="FILE",
        help="Also export the report as CSV",
    )
    parser.add_argument(
        "--markdown",
        metavar="FILE",
        help="Also export a markdown report",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the report as JSON instead of a table",
    )
    parser.add_argument(
        "--tui",
        action="store_true",
        help="Browse the report in an interactive dashboard",
    )
    parser.add_argument(
        "--log-file",
        metavar="FILE",
        help="Also write log records to FILE",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging (skipped directories, failed queries)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"repoaudit {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ScanConfig:
    """Defaults, then the config file, then any flag given on the command line."""
    config = load_config(args.config) if args.config else ScanConfig()

    changes = {}
    for name in ("max_depth", "max_dirs", "skip_junctions", "local_mode",
                 "quiet", "show_nested", "query_timeout", "workers"):
        value = getattr(args, name)
        if value is not None:
            changes[name] = value
    if args.exclude:
        changes["exclude"] = frozenset(args.exclude)

    if args.all_drives and args.paths:
        raise ConfigError("give either PATH arguments or --all-drives, not both")
    if args.all_drives:
        changes["roots"] = tuple(fixed_drives())
    elif args.paths:
        changes["roots"] = tuple(args.paths)

    return validate_config(replace(config, **changes))


# ── Output ────────────────────────────────────────────────────────────


def _error(exc: Exception) -> None:
    from rich.markup import escape

    stderr_console.print(f"[bold red]error:[/bold red] {escape(str(exc))}", highlight=False)


def _progress(done: int, total: int, path: str) -> None:
    name = path.rstrip("/\\").replace("\\", "/").split("/")[-1]
    print(f"\r  [{done}/{total}] {name:<30}", end="", file=sys.stderr)


def _announce(discovery: Discovery) -> None:
    if discovery.repos:
        print(f"  Found {len(discovery.repos)} repos. Checking status...", file=sys.stderr)


def print_table(report: Report) -> None:
    """Print the report table and summary panel to stdout."""
    from rich.console import Console
    from rich.panel import Panel
    from rich.rule import Rule
    from rich.table import Table
    from rich.text import Text

    from repoaudit.export import columns
    from repoaudit.theme import (
        ACCENT_REPOS,
        ACCENT_SUMMARY,
        CYAN,
        GREEN,
        ICON_BEHIND,
        ICON_DIRTY,
        ICON_NESTED,
        ICON_REPOS,
        ICON_UNPUSHED,
        MUTED,
        ORANGE,
        PURPLE,
        RED,
        SURFACE,
        YELLOW,
        ratio_bar,
        render_banner,
        row_cells,
    )

    console = Console()
    console.print(render_banner())

    if not report.rows:
        console.print(f"[{RED}]No git repos found.[/{RED}] Try: repoaudit ~/code")
        return

    console.print(Rule(f"[bold {ACCENT_REPOS}]📦 Repositories[/bold {ACCENT_REPOS}]", style=ACCENT_REPOS))
    table = Table(border_style=SURFACE, show_edge=True, pad_edge=True)
    for col in columns(report.show_nested):
        justify = "right" if col in ("Ahead", "Behind") else "left"
        table.add_column(col, justify=justify, no_wrap=col == "RepoRoot")
    for row in report.rows:
        table.add_row(*row_cells(row, report.show_nested))
    console.print(table)
    console.print()

    s = report.summary
    summary = Text()
    summary.append(f"  {ICON_REPOS} {s.total}", style=f"bold {CYAN}")
    summary.append(" repos", style=MUTED)
    summary.append(f"\n  {ICON_DIRTY} Dirty     ", style=MUTED)
    summary.append_text(ratio_bar(s.dirty, s.total, color=ORANGE))
    summary.append(f"\n  {ICON_UNPUSHED} Unpushed  ", style=MUTED)
    summary.append_text(ratio_bar(s.unpushed, s.total, color=RED))
    summary.append(f"\n  {ICON_UNPUSHED} Ahead     ", style=MUTED)
    summary.append_text(ratio_bar(s.ahead, s.total, color=YELLOW))
    summary.append(f"\n  {ICON_BEHIND} Behind    ", style=MUTED)
    summary.append_text(ratio_bar(s.behind, s.total, color=PURPLE))
    if report.show_nested:
        summary.append(f"\n  {ICON_NESTED} Nested    ", style=MUTED)
        summary.append_text(ratio_bar(s.nested, s.total, color=CYAN))
    if report.truncated:
        summary.append(
            f"\n  Scan stopped after {report.visited:,} directories; results may be incomplete.",
            style=f"bold {YELLOW}",
        )

    console.print(Panel(
        summary,
        title=f"[bold {GREEN}]Summary[/bold {GREEN}]",
        border_style=ACCENT_SUMMARY,
        padding=(1, 1),
    ))


def print_json(report: Report) -> None:
    """Dump the report as JSON to stdout."""
    from repoaudit.export import generate_json

    print(generate_json(report))


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point for the repoaudit CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.write_config:
        try:
            path = save_config(args.write_config)
        except OSError as exc:
            _error(exc)
            return EXIT_USAGE
        print(f"Wrote default config to {path}")
        return EXIT_OK

    try:
        config = config_from_args(args)
        setup_logging(quiet=config.quiet, verbose=args.verbose, log_file=args.log_file)
    except (ConfigError, OSError) as exc:
        _error(exc)
        return EXIT_USAGE

    if args.tui:
        from repoaudit.tui import run_tui

        try:
            run_tui(config)
        except GitNotFoundError as exc:
            _error(exc)
            return EXIT_NO_GIT
        return EXIT_OK

    show_progress = not config.quiet and not args.json_output
    try:
        report = run_audit(
            config,
            on_progress=_progress if show_progress else None,
            on_discovered=_announce if show_progress else None,
        )
    except GitNotFoundError as exc:
        _error(exc)
        return EXIT_NO_GIT
    if show_progress and report.rows:
        print(file=sys.stderr)

    if args.json_output:
        print_json(report)
    else:
        print_table(report)

    from repoaudit.export import generate_report_md, write_csv, write_text

    try:
        if args.csv:
            path = write_csv(args.csv, report)
            _logger.info("CSV written to %s", path)
        if args.markdown:
            path = write_text(args.markdown, generate_report_md(report))
            _logger.info("Markdown report written to %s", path)
    except OSError as exc:
        _error(exc)
        return EXIT_USAGE

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
