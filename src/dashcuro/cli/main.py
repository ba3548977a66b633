#!/usr/bin/env python3
"""
DASHCURO CLI
------------
Primary interface. Translates user commands into Engine actions:

1. scan - discover dashboards with exemplars and write the checkpoint
2. fix  - read the checkpoint and disable exemplars on each dashboard
3. run  - scan and fix in a single invocation

Author: DashCuro Team
Date: 2026-10-18
"""

import sys
import logging
import argparse
from typing import Any, Callable, Dict, List, Optional

from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import (
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
    BarColumn,
    TaskProgressColumn
)

from dashcuro.checkpoint.store import CheckpointStore
from dashcuro.cli.formatter import DashFormatter, console
from dashcuro.client.grafana import GrafanaClient
from dashcuro.config.settings import Settings, resolve_settings
from dashcuro.core.engine import ExemplarEngine
from dashcuro.core.errors import DashcuroError
from dashcuro.rules.exemplar import ExemplarRule, STRATEGIES

VERSION = "1.0.0"

logger = logging.getLogger("dashcuro")

ClientFactory = Callable[[Settings], GrafanaClient]

def default_client_factory(settings: Settings) -> GrafanaClient:
    return GrafanaClient(settings.url, settings.api_token,
                         retries=settings.retries, timeout=settings.timeout)

def configure_logging(level: str = "INFO"):
    """Routes the dashcuro loggers through Rich so they interleave with progress bars."""
    handler = RichHandler(console=console, show_path=False, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

class DashCuroCLI:
    """
    CLI wrapper that translates user commands into Engine actions.
    Provides progress feedback, safety confirmations and diffs.
    """

    def __init__(self, client_factory: ClientFactory = default_client_factory):
        self.client_factory = client_factory
        self.formatter = DashFormatter(console)
        self.parser = argparse.ArgumentParser(
            prog="dashcuro",
            description="DashCuro - Grafana exemplar query remediation",
            formatter_class=argparse.RawDescriptionHelpFormatter,
            epilog="Typical flow: dashcuro scan ... ; review the checkpoint ; dashcuro fix ..."
        )
        self._setup_args()

    def _setup_args(self):
        """Configures the command-line flags and subcommands."""
        self.parser.add_argument("-v", "--version", action="version", version=f"dashcuro v{VERSION}")

        common = argparse.ArgumentParser(add_help=False)
        common.add_argument("--url", help="Base URL for the Grafana instance (env: DASHCURO_URL)")
        common.add_argument("--api-token", help="Grafana API token (env: DASHCURO_API_TOKEN)")
        common.add_argument("--checkpoint", help="Checkpoint file for matched dashboard uids")
        common.add_argument("--config", help="YAML config file")
        common.add_argument("--strategy", choices=STRATEGIES,
                            help="text: literal token replace, tree: structural walk (default: text)")
        common.add_argument("--retries", type=int, help="Low-level HTTP retries per request (default: 3)")
        common.add_argument("--timeout", type=float, help="Per-request timeout in seconds (default: 30)")
        common.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")

        search = argparse.ArgumentParser(add_help=False)
        search.add_argument("--query", help="Restrict discovery to dashboards matching this title query")
        search.add_argument("--tag", action="append", help="Restrict discovery to a tag (repeatable)")
        search.add_argument("--folder-uid", action="append", help="Restrict discovery to a folder (repeatable)")

        mutate = argparse.ArgumentParser(add_help=False)
        mutate.add_argument("--dry-run", action="store_true", help="Rewrite in memory but never save")
        mutate.add_argument("--diff", action="store_true", help="Show the model diff for each dashboard")
        mutate.add_argument("-y", "--yes", action="store_true", help="Skip the confirmation prompt")

        subparsers = self.parser.add_subparsers(dest="command", metavar="Command")

        subparsers.add_parser("scan", parents=[common, search],
                              help="🔍 Find dashboards with exemplars and write the checkpoint")

        fix_parser = subparsers.add_parser("fix", parents=[common, mutate],
                                           help="❤️ Disable exemplars on checkpointed dashboards")
        fix_parser.add_argument("--from-failures", action="store_true",
                                help="Retry the uids from the failed-transactions file")

        subparsers.add_parser("run", parents=[common, search, mutate],
                              help="Scan, checkpoint and fix in one go")

    def print_header(self, subtitle: str):
        console.print(Panel.fit(
            f"[bold cyan]DashCuro v{VERSION}[/bold cyan]\n"
            "══════════════════════════════════════════════════════════════════",
            title=f"[bold white]{subtitle}[/bold white]",
            border_style="cyan"
        ))

    def _confirm_action(self, target_count: int, args: argparse.Namespace) -> bool:
        """Safety Gate: overwriting production dashboards needs an explicit yes."""
        if args.dry_run or args.yes or target_count == 0:
            return True

        console.print(Panel(
            f"[bold red]⚠️  BATCH MODIFICATION[/bold red]\n\n"
            f"Dashboards to overwrite: [bold cyan]{target_count}[/bold cyan]\n",
            expand=False, border_style="red"
        ))
        return console.input("[bold yellow]Type 'CONFIRM' to save changes to Grafana: [/bold yellow]") == "CONFIRM"

    def _search_params(self, args: argparse.Namespace) -> Optional[Dict[str, Any]]:
        params: Dict[str, Any] = {}
        if getattr(args, "query", None):
            params["query"] = args.query
        if getattr(args, "tag", None):
            params["tag"] = args.tag
        if getattr(args, "folder_uid", None):
            params["folderUIDs"] = args.folder_uid
        if params:
            params["type"] = "dash-db"
        return params or None

    def _progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(bar_width=40),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console
        )

    def _build_engine(self, args: argparse.Namespace) -> ExemplarEngine:
        """Raises ConfigError or ValueError before any network activity."""
        cli_values = {
            "url": args.url, "api_token": args.api_token, "checkpoint": args.checkpoint,
            "strategy": args.strategy, "retries": args.retries, "timeout": args.timeout,
        }
        settings = resolve_settings(cli_values, config_path=args.config)
        client = self.client_factory(settings)
        return ExemplarEngine(client, CheckpointStore(settings.checkpoint),
                              ExemplarRule(strategy=settings.strategy), logger=logger)

    def _scan(self, engine: ExemplarEngine, args: argparse.Namespace):
        with self._progress() as progress:
            task_id = progress.add_task("Scanning dashboards...", total=None)

            def advance(done: int, total: int):
                progress.update(task_id, completed=done, total=total)

            discovery = engine.discover(self._search_params(args), progress_callback=advance)

        engine.checkpoint(discovery.candidates)
        self.formatter.print_discovery(discovery, str(engine.store.path))
        return discovery

    def _fix(self, engine: ExemplarEngine, uids: List[str], args: argparse.Namespace) -> int:
        if not self._confirm_action(len(uids), args):
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            return 1

        with self._progress() as progress:
            task_id = progress.add_task("Remediating dashboards...", total=len(uids))

            def advance(done: int, total: int):
                progress.update(task_id, completed=done, total=total)

            context = engine.remediate(uids, dry_run=args.dry_run, capture_content=args.diff,
                                       progress_callback=advance)

        if args.diff:
            for r in context.reports:
                if r.get("changes"):
                    self.formatter.display_diff(r.get("before", ""), r.get("after", ""), r["slug"])

        summary = engine.generate_summary(context)
        self.formatter.print_final_table(context.reports, summary)
        if args.dry_run:
            console.print("\n[bold cyan]Dry Run Mode:[/bold cyan] No dashboards were saved.")
        return 0

    def _dispatch(self, args: argparse.Namespace) -> int:
        engine = self._build_engine(args)
        try:
            if args.command == "scan":
                self._scan(engine, args)
                return 0

            if args.command == "run":
                self._scan(engine, args)
                uids = engine.load_checkpoint()
            else:
                uids = engine.load_checkpoint(failures=args.from_failures)
            return self._fix(engine, uids, args)
        finally:
            engine.client.close()

    def run(self, argv: Optional[List[str]] = None) -> int:
        """Primary routing entry point. Returns the process exit code."""
        argv = sys.argv[1:] if argv is None else argv
        if not argv:
            self.print_header("Grafana Exemplar Remediation")
            self.parser.print_help()
            return 0

        args = self.parser.parse_args(argv)
        if args.command not in ("scan", "fix", "run"):
            self.parser.print_help()
            return 0

        configure_logging(args.log_level)
        titles = {"scan": "Exemplar Discovery Scan", "fix": "Exemplar Remediation", "run": "Scan & Remediate"}
        self.print_header(titles[args.command])

        try:
            return self._dispatch(args)
        except (DashcuroError, ValueError) as e:
            logger.error(str(e))
            console.print(f"[bold red]CRITICAL ERROR:[/bold red] {e}")
            return 1

def main():
    """Application entry point with interrupt handling."""
    try:
        sys.exit(DashCuroCLI().run())
    except KeyboardInterrupt:
        console.print("\n[bold red]Terminated by user.[/bold red]")
        sys.exit(1)

if __name__ == "__main__":
    main()
