"""Audit pipeline: discover → analyze → detect nested → aggregate."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Optional

from repoaudit.config import ScanConfig
from repoaudit.git import RepositoryStatus, collect_status, ensure_git, failed_status
from repoaudit.report import Report, build_report, mark_nested
from repoaudit.scanner import Discovery, discover_with_stats

_logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


def analyze(
    repo_paths: list[str],
    config: ScanConfig,
    on_progress: Optional[ProgressCallback] = None,
) -> list[RepositoryStatus]:
    """Collect status for every path on a bounded pool. One row per path, in completion order."""
    rows: list[RepositoryStatus] = []
    if not repo_paths:
        return rows

    with ThreadPoolExecutor(max_workers=max(1, config.workers)) as executor:
        futures = {executor.submit(collect_status, p, config): p for p in repo_paths}
        for i, future in enumerate(as_completed(futures), 1):
            path = futures[future]
            try:
                rows.append(future.result())
            except Exception:
                _logger.exception("%s: status collection crashed", path)
                rows.append(failed_status(path, config))
            if on_progress is not None:
                on_progress(i, len(repo_paths), path)
    return rows


def run_audit(
    config: ScanConfig,
    on_progress: Optional[ProgressCallback] = None,
    on_discovered: Optional[Callable[[Discovery], None]] = None,
) -> Report:
    """Run a whole audit. Raises GitNotFoundError before touching the filesystem."""
    ensure_git(config.git_executable)

    discovery = discover_with_stats(config.roots, config)
    _logger.debug(
        "discovered %d repos (%s phase, %d dirs visited)",
        len(discovery.repos), discovery.phase, discovery.visited,
    )
    if on_discovered is not None:
        on_discovered(discovery)

    rows = analyze(discovery.repos, config, on_progress)

    if config.show_nested:
        rows = mark_nested(rows, discovery.repos)

    return build_report(rows, discovery, show_nested=config.show_nested)
