"""Tests for repo discovery scanner."""

import logging
import os
import sys
import tempfile

import pytest

from repoaudit import scanner
from repoaudit.config import ScanConfig
from repoaudit.scanner import discover, discover_with_stats, fallback_scan, quick_scan


def _depth(root: str, path: str) -> int:
    rel = os.path.relpath(path, root)
    return 0 if rel == "." else len(rel.split(os.sep))


# --- Quick phase ---

def test_quick_scan_single():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "project-a", ".git"))
        assert quick_scan(tmp) == {os.path.join(tmp, "project-a")}


def test_quick_scan_marker_without_subdir_repo():
    with tempfile.TemporaryDirectory() as tmp:
        x = os.path.join(tmp, "x")
        os.makedirs(os.path.join(x, "a", ".git"))
        os.makedirs(os.path.join(x, "a", "sub"))
        assert discover([x], ScanConfig()) == [os.path.join(x, "a")]


def test_quick_scan_finds_nested():
    """The quick phase keeps walking inside repos, so nested repos are found too."""
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "parent", ".git"))
        os.makedirs(os.path.join(tmp, "parent", "vendor", "child", ".git"))
        repos = discover([tmp], ScanConfig())
        assert repos == [
            os.path.join(tmp, "parent"),
            os.path.join(tmp, "parent", "vendor", "child"),
        ]


def test_quick_scan_worktree_file_marker():
    with tempfile.TemporaryDirectory() as tmp:
        wt = os.path.join(tmp, "worktree")
        os.makedirs(wt)
        with open(os.path.join(wt, ".git"), "w") as f:
            f.write("gitdir: /somewhere/else\n")
        assert quick_scan(tmp) == {wt}


def test_quick_scan_root_is_repo():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, ".git"))
        assert quick_scan(tmp) == {tmp}


def test_quick_scan_missing_root():
    assert quick_scan("/nonexistent/path/for/repoaudit") == set()


def test_quick_scan_error_drops_whole_root(monkeypatch):
    """An error mid-walk gives an empty result for that root, not a partial one."""
    def broken_walk(top, onerror=None, **kwargs):
        yield top, [".git"], []
        onerror(PermissionError(13, "Permission denied", os.path.join(top, "locked")))

    monkeypatch.setattr(scanner.os, "walk", broken_walk)
    assert quick_scan("/anywhere") == set()


# --- Phase selection ---

def test_discover_uses_quick_phase_when_it_finds_repos():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "alpha", ".git"))
        result = discover_with_stats([tmp], ScanConfig())
        assert result.phase == "quick"
        assert result.repos == [os.path.join(tmp, "alpha")]


def test_discover_falls_back_when_quick_is_empty(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "alpha", ".git"))
        monkeypatch.setattr(scanner, "quick_scan", lambda root: set())
        result = discover_with_stats([tmp], ScanConfig())
        assert result.phase == "fallback"
        assert result.repos == [os.path.join(tmp, "alpha")]
        assert result.visited > 0


def test_discover_empty_tree_runs_fallback():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "plain", "dir"))
        result = discover_with_stats([tmp], ScanConfig())
        assert result.repos == []
        assert result.phase == "fallback"


def test_discover_sorted_and_deduplicated():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "zebra", ".git"))
        os.makedirs(os.path.join(tmp, "alpha", ".git"))
        os.makedirs(os.path.join(tmp, "middle", ".git"))
        repos = discover([tmp, tmp, os.path.join(tmp, "zebra")], ScanConfig())
        names = [os.path.basename(r) for r in repos]
        assert names == ["alpha", "middle", "zebra"]


def test_discover_idempotent(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        for name in ("a", "b/c", "b/d/e"):
            os.makedirs(os.path.join(tmp, name, ".git"))
        config = ScanConfig(max_depth=5)
        assert discover([tmp], config) == discover([tmp], config)
        monkeypatch.setattr(scanner, "quick_scan", lambda root: set())
        assert discover([tmp], config) == discover([tmp], config)


# --- Fallback phase ---

def test_fallback_max_depth():
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "a", "b", "c", ".git"))
        assert fallback_scan([tmp], ScanConfig(max_depth=2)).repos == frozenset()
        found = fallback_scan([tmp], ScanConfig(max_depth=3)).repos
        assert found == {os.path.join(tmp, "a", "b", "c")}


def test_fallback_never_tests_beyond_max_depth(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "a", "b", "c", "d", "e"))
        os.makedirs(os.path.join(tmp, "f", "g", "h"))
        tested = []
        real = scanner.has_marker

        def spy(path):
            tested.append(path)
            return real(path)

        monkeypatch.setattr(scanner, "has_marker", spy)
        fallback_scan([tmp], ScanConfig(max_depth=2))
        assert tested
        assert max(_depth(tmp, p) for p in tested) == 2


def test_fallback_excluded_subtree_never_enumerated(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "node_modules", "dep", ".git"))
        os.makedirs(os.path.join(tmp, "real-project", ".git"))
        listed = []
        real = scanner._child_dirs

        def spy(path):
            listed.append(path)
            return real(path)

        monkeypatch.setattr(scanner, "_child_dirs", spy)
        result = fallback_scan([tmp], ScanConfig(exclude=frozenset({"node_modules"})))
        assert result.repos == {os.path.join(tmp, "real-project")}
        assert not any("node_modules" in p for p in listed)


def test_fallback_max_dirs_budget(caplog):
    """Fifty directories, budget of ten: stop after ten and warn."""
    with tempfile.TemporaryDirectory() as tmp:
        for i in range(49):
            os.makedirs(os.path.join(tmp, f"d{i:02d}", ".git"))
        with caplog.at_level(logging.WARNING, logger="repoaudit"):
            result = fallback_scan([tmp], ScanConfig(max_dirs=10))
        assert result.visited == 10
        assert result.truncated is True
        # root first, then nine of its children, each a repo
        assert len(result.repos) == 9
        assert all(os.path.dirname(r) == tmp for r in result.repos)
        assert any("budget" in rec.message for rec in caplog.records)


def test_fallback_budget_spans_roots():
    with tempfile.TemporaryDirectory() as tmp:
        first = os.path.join(tmp, "first")
        second = os.path.join(tmp, "second")
        for i in range(5):
            os.makedirs(os.path.join(first, f"d{i}"))
        os.makedirs(os.path.join(second, "repo", ".git"))
        result = fallback_scan([first, second], ScanConfig(max_dirs=6))
        assert result.visited == 6
        assert result.truncated is True
        assert result.repos == frozenset()


def test_fallback_exact_budget_is_not_truncated():
    with tempfile.TemporaryDirectory() as tmp:
        for i in range(4):
            os.makedirs(os.path.join(tmp, f"d{i}"))
        result = fallback_scan([tmp], ScanConfig(max_dirs=5))
        assert result.visited == 5
        assert result.truncated is False


def test_fallback_unreadable_directory_is_a_leaf(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        locked = os.path.join(tmp, "locked")
        os.makedirs(os.path.join(locked, "hidden-repo", ".git"))
        os.makedirs(os.path.join(tmp, "open", "repo", ".git"))
        real = scanner._child_dirs

        def guarded(path):
            if path == locked:
                raise PermissionError(13, "Permission denied", path)
            return real(path)

        monkeypatch.setattr(scanner, "_child_dirs", guarded)
        result = fallback_scan([tmp], ScanConfig())
        assert result.repos == {os.path.join(tmp, "open", "repo")}


def test_fallback_does_not_walk_into_git_dir(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        os.makedirs(os.path.join(tmp, "proj", ".git", "objects", "ab"))
        tested = []
        monkeypatch.setattr(scanner, "has_marker", lambda p: tested.append(p) or False)
        fallback_scan([tmp], ScanConfig())
        assert not any(".git" in p for p in tested)


@pytest.mark.skipif(sys.platform == "win32", reason="symlinks need privileges on Windows")
def test_fallback_skip_junctions():
    with tempfile.TemporaryDirectory() as tmp:
        target = os.path.join(tmp, "target")
        root = os.path.join(tmp, "root")
        os.makedirs(os.path.join(target, "proj", ".git"))
        os.makedirs(root)
        os.symlink(target, os.path.join(root, "link"))

        skipped = fallback_scan([root], ScanConfig(skip_junctions=True))
        assert skipped.repos == frozenset()

        followed = fallback_scan([root], ScanConfig(skip_junctions=False))
        assert followed.repos == {os.path.join(root, "link", "proj")}


def test_fallback_missing_root():
    result = fallback_scan(["/nonexistent/path/for/repoaudit"], ScanConfig())
    assert result.repos == frozenset()
    assert result.visited == 1
