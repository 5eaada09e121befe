"""Exceptions that abort a run. Per-repository failures are values, not these."""

from __future__ import annotations


class RepoAuditError(Exception):
    """Base class for run-aborting errors."""


class ConfigError(RepoAuditError, ValueError):
    """Invalid option value or unreadable config file."""


class GitNotFoundError(RepoAuditError):
    """The git executable cannot be resolved on this machine."""

    def __init__(self, executable: str) -> None:
        super().__init__(f"git executable not found: {executable!r}")
        self.executable = executable
