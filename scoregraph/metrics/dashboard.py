"""Rich-based execution report dashboard."""

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from scoregraph.core.models import ExecutionReport, RunStatus


class ReportDashboard:
    """Terminal view of an ExecutionReport.

    USAGE:
        dashboard = ReportDashboard()
        dashboard.show(report)
    """

    STATUS_STYLES = {
        RunStatus.COMPLETED: "green",
        RunStatus.ABORTED: "red bold",
        RunStatus.CANCELLED: "yellow",
    }

    GRADE_STYLES = {
        "A+": "green bold",
        "A": "green",
        "B": "cyan",
        "C": "yellow",
        "D": "magenta",
        "F": "red",
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def show(self, report: ExecutionReport) -> None:
        """Display the summary panel followed by the per-node table."""
        self.console.print()
        self.console.rule("[bold blue]Formula Execution Report[/bold blue]")
        self.console.print(self.summary_panel(report))
        self.console.print()
        self.console.print(self.results_table(report))

    def summary_panel(self, report: ExecutionReport) -> Panel:
        style = self.STATUS_STYLES.get(report.status, "white")

        table = Table(show_header=False, box=None)
        table.add_column("Metric", style="dim")
        table.add_column("Value", style="bold")

        table.add_row("Status", f"[{style}]{report.status.value}[/]")
        table.add_row("Nodes", f"{len(report.results)}/{report.plan.total_nodes}")
        table.add_row("Levels", str(report.plan.depth))
        table.add_row("Wall Time", f"{report.total_time * 1000:.1f}ms")
        table.add_row("Sequential Estimate", f"{report.sequential_estimate * 1000:.1f}ms")
        table.add_row("Speedup", f"{report.speedup:.2f}x")
        table.add_row(
            "Cache",
            f"{report.cache_hits} hits / {report.cache_misses} misses "
            f"({report.cache_hit_rate * 100:.0f}%)",
        )
        if report.failure:
            failure = report.failure
            reason = "timed out" if failure.timed_out else escape(failure.message)
            table.add_row(
                "Failure",
                f"[red]{escape(failure.node_id)} (level {failure.level}): "
                f"{escape(failure.error_type)} - {reason}[/]",
            )

        return Panel(table, title="Summary")

    def results_table(self, report: ExecutionReport) -> Table:
        table = Table(title="Node Results")
        table.add_column("Level", justify="right", style="dim")
        table.add_column("Node", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Grade", justify="center")
        table.add_column("Time", justify="right")
        table.add_column("Top Drivers")

        for node_id in report.plan.node_ids:
            result = report.results.get(node_id)
            level = str(report.plan.level_of(node_id))
            if result is None:
                table.add_row(level, escape(node_id), "-", "[dim]-[/]", "-", "[dim]not run[/]")
                continue
            grade_style = self.GRADE_STYLES.get(result.grade, "white")
            table.add_row(
                level,
                escape(node_id),
                f"{result.score:.1f}",
                f"[{grade_style}]{result.grade}[/]",
                f"{result.execution_time * 1000:.1f}ms",
                escape(", ".join(result.drivers[:2])),
            )

        return table
