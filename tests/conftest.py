"""Shared helpers: build real git repositories (and a local bare origin) in temp dirs."""

import os
import shutil
import subprocess

import pytest

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def git(path: str, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", path, *args],
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def init_repo(path: str, commits: int = 1) -> str:
    """Create a repo on branch main with `commits` commits."""
    os.makedirs(path, exist_ok=True)
    subprocess.run(["git", "init", path], capture_output=True, check=True)
    git(path, "symbolic-ref", "HEAD", "refs/heads/main")
    git(path, "config", "user.email", "test@test.com")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "commit.gpgsign", "false")
    for i in range(commits):
        commit(path, f"file{i}.txt")
    return path


def commit(path: str, filename: str, message: str = "") -> None:
    with open(os.path.join(path, filename), "a") as f:
        f.write(f"{filename}\n")
    git(path, "add", filename)
    git(path, "commit", "-m", message or f"Add {filename}")


def add_origin(repo: str, bare: str, push: bool = True) -> str:
    """Attach a local bare repository as origin, optionally pushing main with tracking."""
    subprocess.run(["git", "init", "--bare", bare], capture_output=True, check=True)
    git(repo, "remote", "add", "origin", bare)
    if push:
        git(repo, "push", "-u", "origin", "main")
    return bare
