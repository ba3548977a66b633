# src/dashcuro/cli/formatter.py
import difflib
import json
from typing import Any, Dict, List

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

console = Console()

STATUS_COLORS = {
    "REMEDIATED": "green",
    "PREVIEW": "cyan",
    "UNCHANGED": "dim",
}

class DashFormatter:
    """
    DashFormatter: rendering for diffs, discovery results and the final
    remediation report.
    """

    def __init__(self, out: Console = console):
        self.console = out

    def display_diff(self, before: str, after: str, slug: str):
        """
        Renders a unified diff of the dashboard model before and after
        remediation. Both sides are pretty-printed first so the diff is
        line-oriented.
        """
        if not before or not after:
            return

        diff = list(difflib.unified_diff(
            self._pretty(before).splitlines(),
            self._pretty(after).splitlines(),
            fromfile=f"grafana/{slug}",
            tofile=f"remediated/{slug}",
            lineterm=""
        ))

        if not diff:
            self.console.print(f"[dim]No changes needed for {slug}.[/dim]")
            return

        syntax = Syntax("\n".join(diff), "diff", theme="monokai", line_numbers=True)
        self.console.print(Panel(syntax, title=f"Proposed change: {slug}", border_style="green"))

    @staticmethod
    def _pretty(serialized: str) -> str:
        try:
            return json.dumps(json.loads(serialized), indent=2, sort_keys=True, ensure_ascii=False)
        except ValueError:
            return serialized

    def print_discovery(self, discovery: Any, checkpoint_path: str):
        self.console.print(Panel(
            f"[bold white]Discovery Report[/bold white]\n"
            f"════════════════════════════════════════\n"
            f"Dashboards Scanned:  {discovery.scanned}\n"
            f"With Exemplars:     [cyan]{len(discovery.candidates)}[/cyan]\n"
            f"Skipped (errors):   [red]{len(discovery.skipped)}[/red]\n"
            f"Checkpoint File:    {checkpoint_path}",
            border_style="dim"
        ))
        if discovery.skipped:
            self.console.print(f"[yellow]Skipped dashboards:[/yellow] {', '.join(discovery.skipped)}")

    def print_final_table(self, reports: List[Dict[str, Any]], summary: Dict[str, Any]):
        """
        Builds the per-dashboard table and the summary panel shown at the
        end of a remediation pass.
        """
        table = Table(title="DashCuro Execution Report", show_lines=True, header_style="bold magenta")
        table.add_column("UID", style="cyan")
        table.add_column("Dashboard", style="white")
        table.add_column("Status", style="bold")
        table.add_column("Changes", justify="right")
        table.add_column("Result", justify="center")

        for r in reports:
            success = r.get("success", False)
            color = STATUS_COLORS.get(r.get("status"), "green") if success else "red"
            table.add_row(
                str(r.get("uid")), str(r.get("slug")),
                f"[{color}]{r.get('status')}[/{color}]",
                str(r.get("changes", 0)),
                "✅" if success else "❌"
            )
            if r.get("error"):
                self.console.print(f"[bold red]Error in {r.get('uid')}:[/bold red] {r['error']}")

        self.console.print(table)

        lines = [
            "[bold white]Summary Report[/bold white]",
            "════════════════════════════════════════",
            f"Dashboards:       {summary['total']}",
            f"Successful:      [green]{summary['successful']}[/green]",
            f"Failed:          [red]{summary['failed']}[/red]",
            f"Options Disabled: {summary['changes']}",
        ]
        if summary.get("failures_file"):
            lines.append(f"Failures File:   {summary['failures_file']}")
        self.console.print(Panel("\n".join(lines), border_style="dim"))
