"""Run configuration — defaults, validation, and JSON config files.

The CLI builds one ScanConfig per run and passes it down; nothing below the
CLI reads global state.
"""

from __future__ import annotations

import json
import os
import string
import sys
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from repoaudit.errors import ConfigError

MARKER = ".git"

DEPTH_RANGE = (1, 20)
DIRS_RANGE = (1_000, 1_000_000)

# Interactive scans vs. the values written by --write-config
DEFAULT_MAX_DEPTH = 6
DEFAULT_MAX_DIRS = 150_000
GENERATED_MAX_DEPTH = 4
GENERATED_MAX_DIRS = 50_000

DEFAULT_TIMEOUT = 30.0
DEFAULT_WORKERS = 8

DEFAULT_EXCLUDES = frozenset({
    # build / cache
    "node_modules", ".venv", "venv", "__pycache__", "target", "build",
    "dist", ".gradle", ".dart_tool", ".next", ".nuxt", ".tox",
    ".mypy_cache", ".ruff_cache", ".pytest_cache", "site-packages",
    ".cargo", ".rustup", "Pods", ".cache", ".npm",
    # Windows system
    "$Recycle.Bin", "System Volume Information", "Windows",
    "Program Files", "Program Files (x86)", "ProgramData", "AppData",
    # POSIX pseudo filesystems
    "proc", "sys", "dev", "run", "snap", "lost+found",
})


@dataclass(frozen=True)
class ScanConfig:
    roots: tuple[str, ...] = (".",)
    max_depth: int = DEFAULT_MAX_DEPTH
    max_dirs: int = DEFAULT_MAX_DIRS
    exclude: frozenset[str] = field(default_factory=lambda: DEFAULT_EXCLUDES)
    skip_junctions: bool = True
    local_mode: bool = False
    quiet: bool = False
    show_nested: bool = False
    query_timeout: float = DEFAULT_TIMEOUT
    workers: int = DEFAULT_WORKERS
    git_executable: str = "git"


def validate_config(config: ScanConfig) -> ScanConfig:
    """Check the user-facing ranges. Returns the config unchanged or raises ConfigError."""
    lo, hi = DEPTH_RANGE
    if not lo <= config.max_depth <= hi:
        raise ConfigError(f"max_depth must be between {lo} and {hi}, got {config.max_depth}")
    lo, hi = DIRS_RANGE
    if not lo <= config.max_dirs <= hi:
        raise ConfigError(f"max_dirs must be between {lo:,} and {hi:,}, got {config.max_dirs}")
    if not config.roots:
        raise ConfigError("at least one root path is required")
    if config.query_timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {config.query_timeout}")
    if config.workers < 1:
        raise ConfigError(f"workers must be at least 1, got {config.workers}")
    return config


def fixed_drives() -> list[str]:
    """Roots for --all-drives: fixed drive letters on Windows, '/' elsewhere."""
    if sys.platform != "win32":
        return [os.sep]

    import ctypes

    kernel32 = ctypes.windll.kernel32
    drive_fixed = 3
    bitmask = kernel32.GetLogicalDrives()
    drives: list[str] = []
    for i, letter in enumerate(string.ascii_uppercase):
        if bitmask & (1 << i):
            root = f"{letter}:\\"
            if kernel32.GetDriveTypeW(root) == drive_fixed:
                drives.append(root)
    return drives


# ── Config files ──────────────────────────────────────────────────────

_FIELD_TYPES = {
    "max_depth": int,
    "max_dirs": int,
    "skip_junctions": bool,
    "local_mode": bool,
    "quiet": bool,
    "show_nested": bool,
    "query_timeout": (int, float),
    "workers": int,
    "git_executable": str,
}


def default_config_dict() -> dict[str, Any]:
    """Settings written by --write-config: the conservative generated defaults."""
    return {
        "roots": [],
        "all_drives": True,
        "max_depth": GENERATED_MAX_DEPTH,
        "max_dirs": GENERATED_MAX_DIRS,
        "exclude": sorted(DEFAULT_EXCLUDES),
        "skip_junctions": True,
        "local_mode": False,
        "quiet": False,
        "show_nested": False,
        "query_timeout": DEFAULT_TIMEOUT,
        "workers": DEFAULT_WORKERS,
        "git_executable": "git",
    }


def apply_overrides(base: ScanConfig, data: dict[str, Any]) -> ScanConfig:
    """Return base updated with the known keys in data, type-checking each one."""
    known = {f.name for f in fields(ScanConfig)} | {"all_drives"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")

    changes: dict[str, Any] = {}
    for key, expected in _FIELD_TYPES.items():
        if key not in data:
            continue
        value = data[key]
        # bool is an int subclass; keep numeric keys from accepting true/false
        if isinstance(value, bool) and expected is not bool:
            raise ConfigError(f"{key}: expected a number, got {value!r}")
        if not isinstance(value, expected):
            raise ConfigError(f"{key}: unexpected value {value!r}")
        changes[key] = value

    if "exclude" in data:
        if not isinstance(data["exclude"], list) or not all(isinstance(n, str) for n in data["exclude"]):
            raise ConfigError("exclude: expected a list of directory names")
        changes["exclude"] = frozenset(data["exclude"])

    if data.get("all_drives"):
        changes["roots"] = tuple(fixed_drives())
    elif data.get("roots"):
        roots = data["roots"]
        if not isinstance(roots, list) or not all(isinstance(r, str) for r in roots):
            raise ConfigError("roots: expected a list of paths")
        changes["roots"] = tuple(roots)

    return replace(base, **changes)


def load_config(path: str | Path, base: ScanConfig | None = None) -> ScanConfig:
    """Read a JSON config file on top of base (or the built-in defaults)."""
    path = Path(path).expanduser()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read config file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"config file {path} is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"config file {path} must contain a JSON object")
    return apply_overrides(base or ScanConfig(), data)


def save_config(path: str | Path, data: dict[str, Any] | None = None) -> Path:
    """Write data (default: the generated defaults) as a JSON config file."""
    path = Path(path).expanduser()
    payload = default_config_dict() if data is None else data
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")
    return path
