"""Shared visual constants and helpers for repoaudit."""

from __future__ import annotations

from rich.style import Style
from rich.text import Text

from repoaudit.git import PushState, RepositoryStatus

# ── Color Palette (GitHub Dark + Neon Accents) ──────────────────────────

SURFACE = "#161b22"
BORDER = "#30363d"
MUTED = "#8b949e"
FG = "#e6edf3"

CYAN = "#58a6ff"
GREEN = "#39d353"
PURPLE = "#bc8cff"
YELLOW = "#e3b341"
RED = "#f85149"
ORANGE = "#f0883e"

ACCENT_REPOS = CYAN
ACCENT_SUMMARY = GREEN

PUSH_COLORS = {
    PushState.YES: GREEN,
    PushState.NO: RED,
    PushState.UNKNOWN: YELLOW,
    PushState.SKIPPED: MUTED,
}

# ── ASCII Banner ────────────────────────────────────────────────────────

BANNER = r"""
                                           _ _ _
  _ __ ___ _ __   ___   __ _ _   _  __| (_) |_
 | '__/ _ \ '_ \ / _ \ / _` | | | |/ _` | | __|
 | | |  __/ |_) | (_) | (_| | |_| | (_| | | |_
 |_|  \___| .__/ \___/ \__,_|\__,_|\__,_|_|\__|
          |_|"""

TAGLINE = "where every repo stands against its remote"

ICON_REPOS = "📦"
ICON_DIRTY = "✏️"
ICON_UNPUSHED = "⬆"
ICON_BEHIND = "⬇"
ICON_NESTED = "🪆"


def is_sentinel(value: str) -> bool:
    """Placeholders like "(none)" and "Skipped (Local Mode)" render dimmed."""
    return value.startswith("(") or value.startswith("Skipped")


def field_text(value: str, color: str = FG) -> Text:
    if is_sentinel(value):
        return Text(value, style=Style(color=MUTED, italic=True))
    return Text(value, style=Style(color=color))


def count_text(n: int, color: str) -> Text:
    if n == 0:
        return Text("0", style=Style(color=MUTED))
    return Text(str(n), style=Style(color=color, bold=True))


def pushed_text(state: PushState) -> Text:
    return Text(state.value, style=Style(color=PUSH_COLORS[state], bold=state is PushState.NO))


def dirty_text(dirty: bool) -> Text:
    if dirty:
        return Text("Yes", style=Style(color=ORANGE, bold=True))
    return Text("No", style=Style(color=MUTED))


def row_cells(row: RepositoryStatus, show_nested: bool = False) -> list[Text]:
    """One styled cell per report column, in column order."""
    cells = [
        Text(row.path, style=Style(color=CYAN, bold=True)),
        field_text(row.branch, PURPLE),
        field_text(row.origin),
        field_text(row.upstream),
        count_text(row.ahead, YELLOW),
        count_text(row.behind, RED),
        pushed_text(row.pushed),
        dirty_text(row.dirty),
    ]
    if show_nested:
        cells.append(field_text(row.nested_parent or "", MUTED))
    return cells


# ── Gradient Bar ────────────────────────────────────────────────────────


def ratio_bar(value: int, total: int, width: int = 20, color: str = GREEN) -> Text:
    """Render value/total as a bar followed by the raw count."""
    filled = int((value / max(total, 1)) * width)
    text = Text()
    text.append("█" * filled, style=Style(color=color))
    text.append("░" * (width - filled), style=Style(color=BORDER))
    text.append(f" {value}", style=Style(color=color, bold=True))
    return text


# ── Banner Rendering ────────────────────────────────────────────────────


def render_banner() -> Text:
    """Render the repoaudit ASCII banner as styled Rich Text."""
    text = Text(justify="center")
    for line in BANNER.strip("\n").split("\n"):
        text.append(line + "\n", style=Style(color=GREEN, bold=True))
    text.append(f"  {TAGLINE}\n", style=Style(color=MUTED, italic=True))
    return text
