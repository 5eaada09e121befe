"""Git status collection — subprocess-based, every call bounded by a timeout."""

from __future__ import annotations

import enum
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from typing import Optional

from repoaudit.config import DEFAULT_TIMEOUT, ScanConfig
from repoaudit.errors import GitNotFoundError

_logger = logging.getLogger(__name__)

NO_BRANCH = "(detached or none)"
NO_ORIGIN = "(no origin)"
LOCAL_ORIGIN = "Skipped (Local Mode)"
NO_UPSTREAM = "(none)"

# Credential prompts would block on the terminal until the query times out
_QUERY_ENV = {"GIT_TERMINAL_PROMPT": "0"}


class Outcome(str, enum.Enum):
    OK = "ok"
    EXIT_NONZERO = "exit_nonzero"
    ACCESS_DENIED = "access_denied"
    TIMEOUT = "timeout"
    PROCESS_ERROR = "process_error"
    PARSE_FAILURE = "parse_failure"


# Outcomes that mean we could not get an answer, as opposed to git answering "no"
FAULT_OUTCOMES = frozenset({
    Outcome.ACCESS_DENIED, Outcome.TIMEOUT, Outcome.PROCESS_ERROR, Outcome.PARSE_FAILURE,
})


class PushState(str, enum.Enum):
    YES = "Yes"
    NO = "No"
    UNKNOWN = "Unknown"
    SKIPPED = "Skipped"


@dataclass(frozen=True)
class QueryResult:
    outcome: Outcome
    output: str = ""
    returncode: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @property
    def text(self) -> str:
        """Trimmed stdout on success, empty string for every other outcome."""
        return self.output if self.ok else ""


@dataclass(frozen=True)
class Fault:
    field: str
    outcome: Outcome


@dataclass(frozen=True)
class RepositoryStatus:
    path: str
    branch: str = NO_BRANCH
    origin: str = NO_ORIGIN
    upstream: str = NO_UPSTREAM
    ahead: int = 0
    behind: int = 0
    pushed: PushState = PushState.UNKNOWN
    dirty: bool = False
    nested_parent: Optional[str] = None
    faults: tuple[Fault, ...] = ()


def ensure_git(executable: str = "git") -> str:
    """Resolve the git executable or raise GitNotFoundError."""
    resolved = shutil.which(executable)
    if resolved is None:
        raise GitNotFoundError(executable)
    return resolved


def run_query(
    repo_path: str,
    args: list[str],
    timeout: float = DEFAULT_TIMEOUT,
    executable: str = "git",
) -> QueryResult:
    """Run `executable *args` inside repo_path. Never raises, never retries."""
    cmd = [executable] + args
    try:
        result = subprocess.run(
            cmd,
            cwd=repo_path,
            capture_output=True,
            stdin=subprocess.DEVNULL,
            env={**os.environ, **_QUERY_ENV},
            text=True,
            timeout=timeout,
            errors="replace",
        )
    except subprocess.TimeoutExpired:
        # subprocess.run has already killed the child by the time this surfaces
        _logger.warning(
            "%s: '%s' timed out after %ss", repo_path, " ".join(args), timeout,
        )
        return QueryResult(Outcome.TIMEOUT)
    except PermissionError as exc:
        _logger.debug("%s: '%s' not permitted: %s", repo_path, " ".join(args), exc)
        return QueryResult(Outcome.ACCESS_DENIED)
    except (OSError, ValueError, subprocess.SubprocessError) as exc:
        _logger.debug("%s: '%s' failed to run: %s", repo_path, " ".join(args), exc)
        return QueryResult(Outcome.PROCESS_ERROR)

    if result.returncode != 0:
        return QueryResult(Outcome.EXIT_NONZERO, returncode=result.returncode)
    return QueryResult(Outcome.OK, (result.stdout or "").strip(), result.returncode)


def parse_ahead_behind(output: str) -> Optional[tuple[int, int]]:
    """Parse `rev-list --left-right --count` output ("3\\t1") into (ahead, behind)."""
    parts = output.split()
    if len(parts) != 2:
        return None
    try:
        ahead, behind = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if ahead < 0 or behind < 0:
        return None
    return ahead, behind


def collect_status(repo_path: str, config: ScanConfig) -> RepositoryStatus:
    """Query one repository. Each field falls back to its sentinel on failure."""
    faults: list[Fault] = []

    def query(name: str, args: list[str]) -> QueryResult:
        res = run_query(repo_path, args, config.query_timeout, config.git_executable)
        if res.outcome in FAULT_OUTCOMES:
            faults.append(Fault(name, res.outcome))
        return res

    branch = query("branch", ["branch", "--show-current"]).text or NO_BRANCH

    # Local mode must not issue the origin query at all
    if config.local_mode:
        origin = LOCAL_ORIGIN
    else:
        origin = query("origin", ["remote", "get-url", "origin"]).text or NO_ORIGIN

    upstream = query("upstream", [
        "rev-parse", "--abbrev-ref", "--symbolic-full-name", "@{u}",
    ]).text or NO_UPSTREAM

    ahead = behind = 0
    if not config.local_mode and upstream != NO_UPSTREAM:
        counts = query("ahead_behind", ["rev-list", "--left-right", "--count", "HEAD...@{u}"])
        if counts.ok:
            parsed = parse_ahead_behind(counts.text)
            if parsed is None:
                _logger.warning(
                    "%s: could not parse ahead/behind counts from %r", repo_path, counts.text,
                )
                faults.append(Fault("ahead_behind", Outcome.PARSE_FAILURE))
            else:
                ahead, behind = parsed

    if config.local_mode:
        pushed = PushState.SKIPPED
    elif origin != NO_ORIGIN and branch != NO_BRANCH:
        remote = query("pushed", ["ls-remote", "--heads", "origin", f"refs/heads/{branch}"])
        if remote.ok:
            pushed = PushState.YES if remote.text else PushState.NO
        else:
            pushed = PushState.UNKNOWN
    else:
        pushed = PushState.UNKNOWN

    dirty = bool(query("dirty", ["status", "--porcelain"]).text)

    return RepositoryStatus(
        path=repo_path,
        branch=branch,
        origin=origin,
        upstream=upstream,
        ahead=ahead,
        behind=behind,
        pushed=pushed,
        dirty=dirty,
        faults=tuple(faults),
    )


def failed_status(repo_path: str, config: ScanConfig) -> RepositoryStatus:
    """Row for a repository whose analysis crashed outright: every field at its sentinel."""
    return RepositoryStatus(
        path=repo_path,
        origin=LOCAL_ORIGIN if config.local_mode else NO_ORIGIN,
        pushed=PushState.SKIPPED if config.local_mode else PushState.UNKNOWN,
        faults=(Fault("status", Outcome.PROCESS_ERROR),),
    )
