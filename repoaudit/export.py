"""Export utilities — CSV, JSON, and markdown report."""

from __future__ import annotations

import csv
import io
import json
from datetime import date
from pathlib import Path

from repoaudit import __version__
from repoaudit.git import RepositoryStatus
from repoaudit.report import Report

BASE_COLUMNS = ["RepoRoot", "Branch", "Origin", "Upstream", "Ahead", "Behind", "Pushed", "Dirty"]


def columns(show_nested: bool) -> list[str]:
    return BASE_COLUMNS + ["Nested"] if show_nested else list(BASE_COLUMNS)


def row_values(row: RepositoryStatus, show_nested: bool) -> list[str]:
    """Plain string cells, in column order."""
    values = [
        row.path,
        row.branch,
        row.origin,
        row.upstream,
        str(row.ahead),
        str(row.behind),
        row.pushed.value,
        "Yes" if row.dirty else "No",
    ]
    if show_nested:
        values.append(row.nested_parent or "")
    return values


# ── CSV ───────────────────────────────────────────────────────────────


def generate_csv(report: Report) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns(report.show_nested))
    for row in report.rows:
        writer.writerow(row_values(row, report.show_nested))
    return buf.getvalue()


def write_csv(path: str | Path, report: Report) -> Path:
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as f:
        f.write(generate_csv(report))
    return path


# ── JSON ──────────────────────────────────────────────────────────────


def report_to_dict(report: Report) -> dict:
    s = report.summary
    return {
        "version": __version__,
        "discovery": {
            "phase": report.phase,
            "visited": report.visited,
            "truncated": report.truncated,
        },
        "summary": {
            "total": s.total,
            "dirty": s.dirty,
            "unpushed": s.unpushed,
            "ahead": s.ahead,
            "behind": s.behind,
            "nested": s.nested,
        },
        "repos": [
            {
                "path": r.path,
                "branch": r.branch,
                "origin": r.origin,
                "upstream": r.upstream,
                "ahead": r.ahead,
                "behind": r.behind,
                "pushed": r.pushed.value,
                "dirty": r.dirty,
                "nested_parent": r.nested_parent,
                "faults": [{"field": f.field, "outcome": f.outcome.value} for f in r.faults],
            }
            for r in report.rows
        ],
    }


def generate_json(report: Report) -> str:
    return json.dumps(report_to_dict(report), indent=2)


# ── Markdown Report ───────────────────────────────────────────────────


def _md_cell(value: str) -> str:
    return value.replace("|", "\\|")


def generate_report_md(report: Report) -> str:
    """Generate a clean markdown report: overview table, then one row per repo."""
    s = report.summary
    lines = [
        f"# repoaudit Report — {date.today().isoformat()}",
        "",
        "## Overview",
        "",
        "| Metric | Value |",
        "|--------|-------|",
        f"| Repositories | {s.total} |",
        f"| Dirty | {s.dirty} |",
        f"| Unpushed | {s.unpushed} |",
        f"| Ahead of upstream | {s.ahead} |",
        f"| Behind upstream | {s.behind} |",
    ]
    if report.show_nested:
        lines.append(f"| Nested | {s.nested} |")
    lines.append("")

    if report.truncated:
        lines.append(
            f"> Scan stopped after {report.visited:,} directories; "
            "results may be incomplete."
        )
        lines.append("")

    if report.rows:
        cols = columns(report.show_nested)
        lines.append("## Repositories")
        lines.append("")
        lines.append("| " + " | ".join(cols) + " |")
        lines.append("|" + "|".join("---" for _ in cols) + "|")
        for row in report.rows:
            cells = [_md_cell(v) for v in row_values(row, report.show_nested)]
            lines.append("| " + " | ".join(cells) + " |")
        lines.append("")

    lines.append("---")
    lines.append(f"*Generated by repoaudit {__version__}*")
    lines.append("")
    return "\n".join(lines)


def write_text(path: str | Path, content: str) -> Path:
    path = Path(path).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path
