"""Repo discovery — find git repository roots under a set of directories.

Two phases. The quick phase leans on os.walk and has no depth or exclusion
control. Only when it finds nothing across every root does the fallback run:
a breadth-first walk with a depth limit, an exclusion list, optional
junction skipping, and a global budget on directories visited.
"""

from __future__ import annotations

import logging
import os
import stat
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable

from repoaudit.config import MARKER, ScanConfig

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanResult:
    repos: frozenset[str] = field(default_factory=frozenset)
    visited: int = 0
    truncated: bool = False


@dataclass(frozen=True)
class Discovery:
    repos: list[str]
    phase: str  # "quick" or "fallback"
    visited: int = 0
    truncated: bool = False


def normalize_root(root: str) -> str:
    return os.path.abspath(os.path.expanduser(root))


def has_marker(path: str) -> bool:
    """True if path directly contains the .git entry (directory or worktree file)."""
    return os.path.lexists(os.path.join(path, MARKER))


def is_reparse_point(entry: os.DirEntry) -> bool:
    """Symlink, NTFS junction, or any other reparse point."""
    try:
        if entry.is_symlink():
            return True
        attrs = getattr(entry.stat(follow_symlinks=False), "st_file_attributes", 0)
    except OSError:
        return False
    return bool(attrs & getattr(stat, "FILE_ATTRIBUTE_REPARSE_POINT", 0))


# ── Quick phase ───────────────────────────────────────────────────────


def _raise(exc: OSError) -> None:
    raise exc


def quick_scan(root: str) -> set[str]:
    """Enumerate every directory under root with os.walk and keep the marked ones.

    Any access or I/O error anywhere in the walk drops the whole root: the
    result is all or nothing, never partial.
    """
    root = normalize_root(root)
    found: set[str] = set()
    try:
        for dirpath, dirnames, filenames in os.walk(root, onerror=_raise):
            if MARKER in dirnames or MARKER in filenames:
                found.add(dirpath)
            if MARKER in dirnames:
                # Nothing inside .git can itself be a repository root
                dirnames.remove(MARKER)
    except OSError as exc:
        _logger.debug("quick scan of %s abandoned: %s", root, exc)
        return set()
    return found


# ── Fallback phase ────────────────────────────────────────────────────


def _child_dirs(path: str) -> list[os.DirEntry]:
    with os.scandir(path) as it:
        return [e for e in it if _is_dir(e)]


def _is_dir(entry: os.DirEntry) -> bool:
    try:
        return entry.is_dir()
    except OSError:
        return False


def fallback_scan(roots: Iterable[str], config: ScanConfig) -> ScanResult:
    """Breadth-first walk of each root, bounded by depth and by config.max_dirs.

    The visited counter is shared by all roots. When the budget runs out
    while directories are still queued, the walk stops and whatever was
    found so far is returned with truncated=True.
    """
    found: set[str] = set()
    visited = 0

    for root in roots:
        queue: deque[tuple[str, int]] = deque([(normalize_root(root), 0)])
        while queue:
            if visited >= config.max_dirs:
                _logger.warning(
                    "Directory budget of %d reached; stopping scan with %d repos found so far",
                    config.max_dirs, len(found),
                )
                return ScanResult(frozenset(found), visited, truncated=True)

            path, depth = queue.popleft()
            visited += 1

            if has_marker(path):
                found.add(path)

            if depth >= config.max_depth:
                continue

            try:
                children = _child_dirs(path)
            except OSError as exc:
                _logger.debug("skipping unreadable directory %s: %s", path, exc)
                continue

            for child in children:
                if child.name == MARKER or child.name in config.exclude:
                    continue
                if config.skip_junctions and is_reparse_point(child):
                    continue
                queue.append((child.path, depth + 1))

    return ScanResult(frozenset(found), visited)


# ── Entry points ──────────────────────────────────────────────────────


def discover_with_stats(roots: Iterable[str], config: ScanConfig) -> Discovery:
    """Run the quick phase, falling back to the bounded walk on an empty result."""
    roots = [normalize_root(r) for r in roots]

    quick: set[str] = set()
    for root in roots:
        quick |= quick_scan(root)
    if quick:
        return Discovery(repos=sorted(quick), phase="quick")

    # An empty quick result can mean an empty tree or a swallowed error; the
    # bounded walk runs either way.
    _logger.info("Quick scan found no repositories; running bounded scan")
    result = fallback_scan(roots, config)
    return Discovery(
        repos=sorted(result.repos),
        phase="fallback",
        visited=result.visited,
        truncated=result.truncated,
    )


def discover(roots: Iterable[str], config: ScanConfig) -> list[str]:
    """Sorted, de-duplicated repository roots under roots."""
    return discover_with_stats(roots, config).repos
