"""
Terraform-style output formatting for Sysconverge runs.

Plans use `+` for create, `~` for update, `-` for remove. Run reports use one
line per resource with its terminal status.
"""

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .models import PlanAction, PlanEntry, ResourceStatus, RunReport


class ReportFormatter:
    """Render plans and run reports to a Rich console."""

    def __init__(self, console: Console | None = None):
        """Initialize formatter with Rich console."""
        self.console = console or Console()

        self.plan_styles = {
            PlanAction.CREATE: ("+", "green"),
            PlanAction.UPDATE: ("~", "yellow"),
            PlanAction.REMOVE: ("-", "red"),
            PlanAction.NO_CHANGE: (" ", "dim"),
            PlanAction.UNKNOWN: ("?", "magenta"),
        }

        self.status_styles = {
            ResourceStatus.SKIPPED: "dim",
            ResourceStatus.APPLIED: "green",
            ResourceStatus.FAILED: "bold red",
            ResourceStatus.BLOCKED: "yellow",
            ResourceStatus.PENDING: "white",
        }

    def plan_text(self, entries: list[PlanEntry]) -> Text:
        text = Text()
        for entry in entries:
            symbol, style = self.plan_styles[entry.action]
            text.append(f"  {symbol} ", style=style)
            text.append(entry.resource_id, style="bright_white")
            if entry.detail and entry.action != PlanAction.NO_CHANGE:
                text.append(f"  {entry.detail}", style="dim")
            text.append("\n")
        return text

    def print_plan(self, entries: list[PlanEntry]) -> None:
        self.console.print(self.plan_text(entries), end="")
        changes = [e for e in entries if e.action != PlanAction.NO_CHANGE]
        counts = {
            action: sum(1 for e in changes if e.action == action)
            for action in (PlanAction.CREATE, PlanAction.UPDATE, PlanAction.REMOVE)
        }
        self.console.print(
            f"\nPlan: {counts[PlanAction.CREATE]} to create, "
            f"{counts[PlanAction.UPDATE]} to update, "
            f"{counts[PlanAction.REMOVE]} to remove."
        )

    def report_table(self, report: RunReport) -> Table:
        table = Table(show_header=True, header_style="bold blue")
        table.add_column("Stage")
        table.add_column("Resource")
        table.add_column("State")
        table.add_column("Status")
        table.add_column("Reason", overflow="fold")
        for result in report.results:
            style = self.status_styles[result.status]
            table.add_row(
                result.stage.value,
                result.resource_id,
                result.desired_state.value,
                Text(result.status.value, style=style),
                " ← ".join(result.reason_chain) if result.reason_chain else "",
            )
        return table

    def print_report(self, report: RunReport) -> None:
        self.console.print(self.report_table(report))
        summary = ", ".join(f"{count} {status}" for status, count in report.counts().items())
        self.console.print(f"[dim]{summary}[/dim]")
