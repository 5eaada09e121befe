"""Report assembly — nested-repo detection, sorting, and summary counters."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from repoaudit.git import PushState, RepositoryStatus
from repoaudit.scanner import Discovery


@dataclass(frozen=True)
class Summary:
    total: int = 0
    dirty: int = 0
    unpushed: int = 0
    ahead: int = 0
    behind: int = 0
    nested: int = 0


@dataclass(frozen=True)
class Report:
    rows: list[RepositoryStatus] = field(default_factory=list)
    summary: Summary = field(default_factory=Summary)
    show_nested: bool = False
    phase: str = ""
    visited: int = 0
    truncated: bool = False


def find_parent(repo_path: str, all_repo_paths: Iterable[str]) -> Optional[str]:
    """Return a discovered repository that strictly contains repo_path, if any.

    other is a parent when repo_path starts with other plus a separator, so
    /r1 contains /r1/vendor/dep but not /r10. First match wins.
    """
    for other in all_repo_paths:
        if other == repo_path:
            continue
        prefix = other.rstrip(os.sep) + os.sep
        if repo_path.startswith(prefix):
            return other
    return None


def mark_nested(
    rows: Iterable[RepositoryStatus],
    all_repo_paths: Iterable[str],
) -> list[RepositoryStatus]:
    """Copy of rows with nested_parent filled in. Needs the complete path set."""
    paths = sorted(all_repo_paths)
    return [replace(row, nested_parent=find_parent(row.path, paths)) for row in rows]


def compute_summary(rows: list[RepositoryStatus]) -> Summary:
    return Summary(
        total=len(rows),
        dirty=sum(1 for r in rows if r.dirty),
        unpushed=sum(1 for r in rows if r.pushed is PushState.NO),
        ahead=sum(1 for r in rows if r.ahead > 0),
        behind=sum(1 for r in rows if r.behind > 0),
        nested=sum(1 for r in rows if r.nested_parent),
    )


def build_report(
    rows: Iterable[RepositoryStatus],
    discovery: Optional[Discovery] = None,
    *,
    show_nested: bool = False,
) -> Report:
    """Sort rows by path and count. Pure function of its input."""
    ordered = sorted(rows, key=lambda r: r.path)
    return Report(
        rows=ordered,
        summary=compute_summary(ordered),
        show_nested=show_nested,
        phase=discovery.phase if discovery else "",
        visited=discovery.visited if discovery else 0,
        truncated=discovery.truncated if discovery else False,
    )
