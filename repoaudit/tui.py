"""Textual TUI dashboard — interactive repository status viewer."""

from __future__ import annotations

from typing import Optional

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import DataTable, Footer, Header, Label, Static
from textual_plotext import PlotextPlot

from repoaudit.config import ScanConfig
from repoaudit.export import columns
from repoaudit.git import ensure_git
from repoaudit.pipeline import run_audit
from repoaudit.report import Report
from repoaudit.theme import row_cells


class OverviewPanel(Static):
    """Totals and scan metadata."""

    def update_data(self, report: Report) -> None:
        s = report.summary
        text = Text()
        text.append("  Repos: ", style="dim")
        text.append(f"{s.total}", style="bold cyan")
        text.append("    Dirty: ", style="dim")
        text.append(f"{s.dirty}", style="bold yellow" if s.dirty else "dim")
        text.append("    Unpushed: ", style="dim")
        text.append(f"{s.unpushed}", style="bold red" if s.unpushed else "dim")
        text.append("\n")
        text.append("  Ahead: ", style="dim")
        text.append(f"{s.ahead}", style="bold")
        text.append("    Behind: ", style="dim")
        text.append(f"{s.behind}", style="bold")
        if report.show_nested:
            text.append("    Nested: ", style="dim")
            text.append(f"{s.nested}", style="bold magenta")
        text.append("\n")
        text.append(f"  Discovery: {report.phase or '-'}", style="dim")
        if report.truncated:
            text.append(
                f"  (stopped after {report.visited:,} directories)", style="bold yellow",
            )

        self.update(text)


class SummaryChart(PlotextPlot):
    """Bar chart of the summary counters."""

    def update_data(self, report: Report) -> None:
        plt = self.plt
        plt.clear_figure()
        plt.theme("dark")

        s = report.summary
        if not s.total:
            plt.title("No repositories")
            self.refresh()
            return

        labels = ["dirty", "unpushed", "ahead", "behind"]
        values = [s.dirty, s.unpushed, s.ahead, s.behind]
        if report.show_nested:
            labels.append("nested")
            values.append(s.nested)

        plt.bar(labels, values, orientation="horizontal", color="cyan")
        plt.title(f"Out of {s.total} repos")
        plt.xlabel("")
        self.refresh()


class RepoTable(DataTable):
    """Scrollable status table, one row per repository."""

    def update_data(self, report: Report) -> None:
        self.clear(columns=True)
        self.add_columns(*columns(report.show_nested))
        for row in report.rows:
            self.add_row(*row_cells(row, report.show_nested))


class RepoAuditApp(App):
    """repoaudit — where every repo stands against its remote."""

    CSS = """
    Screen {
        layout: grid;
        grid-size: 2 2;
        grid-gutter: 1;
        grid-rows: auto 1fr;
        grid-columns: 3fr 1fr;
    }

    #overview {
        column-span: 2;
        height: auto;
        min-height: 5;
        border: solid $accent;
        padding: 0 1;
    }

    #repos {
        border: solid $secondary;
        min-height: 10;
    }

    #summary {
        border: solid $secondary;
        min-height: 10;
    }

    #loading {
        column-span: 2;
        row-span: 2;
        content-align: center middle;
        text-align: center;
        height: 100%;
    }
    """

    TITLE = "repoaudit"
    SUB_TITLE = "where every repo stands against its remote"

    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("tab", "focus_next", "Next Panel"),
        Binding("shift+tab", "focus_previous", "Prev Panel"),
    ]

    def __init__(self, config: ScanConfig) -> None:
        super().__init__()
        self.config = config
        self.report: Optional[Report] = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Label("  Scanning for repos...", id="loading")
        yield Footer()

    def on_mount(self) -> None:
        self.run_scan()

    @work(thread=True)
    def run_scan(self) -> None:
        """Run the audit in a background thread."""
        def progress(done: int, total: int, path: str) -> None:
            self.call_from_thread(
                self._update_loading, f"  Checking repo {done}/{total}..."
            )

        report = run_audit(self.config, on_progress=progress)
        self.report = report
        if not report.rows:
            self.call_from_thread(self._show_no_repos)
            return
        self.call_from_thread(self._render_dashboard, report)

    def _update_loading(self, text: str) -> None:
        loading = self.query("#loading")
        if loading:
            loading.first(Label).update(text)

    def _show_no_repos(self) -> None:
        self._update_loading("  No git repos found. Try: repoaudit --tui ~/code")

    def _render_dashboard(self, report: Report) -> None:
        """Remove loading screen and mount dashboard widgets."""
        self.query("#loading").remove()

        overview = OverviewPanel(id="overview")
        repos = RepoTable(id="repos")
        summary = SummaryChart(id="summary")

        footer = self.query_one(Footer)
        self.mount(overview, before=footer)
        self.mount(repos, before=footer)
        self.mount(summary, before=footer)

        overview.update_data(report)
        repos.update_data(report)
        summary.update_data(report)


def run_tui(config: ScanConfig) -> None:
    """Launch the repoaudit TUI dashboard. Checks for git before starting."""
    ensure_git(config.git_executable)
    app = RepoAuditApp(config)
    app.run()
