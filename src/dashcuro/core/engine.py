#!/usr/bin/env python3
"""
DASHCURO ENGINE - The High Orchestrator
---------------------------------------
The ExemplarEngine drives a dashboard fleet through the three DashCuro
stages: discovery, checkpointing and remediation. The checkpoint file sits
between discovery and remediation so the two can run as separate commands
and a crashed remediation can resume without a fresh scan.

Author: DashCuro Team
Date: 2026-10-18
"""

import time
import logging
from typing import Dict, Any, List, Optional, Callable, Mapping

from dashcuro.checkpoint.store import CheckpointStore
from dashcuro.client.grafana import GrafanaClient
from dashcuro.core.errors import CheckpointError
from dashcuro.remediation.context import DiscoveryResult, RemediationContext
from dashcuro.remediation.pipeline import RemediationPipeline
from dashcuro.remediation.scanner import ExemplarScanner
from dashcuro.rules.exemplar import ExemplarRule

ProgressCallback = Optional[Callable[[int, int], None]]

class ExemplarEngine:
    """
    Principal orchestrator. Holds the Grafana client, the exemplar rule and
    the checkpoint store, and wires the scanner and the pipeline to them.
    """

    def __init__(self, client: GrafanaClient, store: Optional[CheckpointStore] = None,
                 rule: Optional[ExemplarRule] = None, logger: Optional[logging.Logger] = None):
        self.client = client
        self.store = store or CheckpointStore()
        self.rule = rule or ExemplarRule()
        self.logger = logger or logging.getLogger("dashcuro.engine")

        self.scanner = ExemplarScanner(client, self.rule, logger=self.logger.getChild("scanner"))
        self.pipeline = RemediationPipeline(client, self.rule, logger=self.logger.getChild("pipeline"))

    # --- Stage 1: Discovery ---
    def discover(self, params: Optional[Mapping[str, Any]] = None,
                 progress_callback: ProgressCallback = None) -> DiscoveryResult:
        """Raises DiscoveryError when the dashboard list is unavailable."""
        self.logger.info("Searching for dashboards with exemplars")
        result = self.scanner.find_dashboards_with_exemplars(params, progress_callback=progress_callback)
        self.logger.info(f"Found {len(result.candidates)} dashboards with exemplars. Saving to file")
        if result.skipped:
            self.logger.warning(
                f"{len(result.skipped)} dashboards could not be inspected and were skipped: "
                f"{', '.join(result.skipped)}"
            )
        return result

    # --- Stage 2: Checkpointing ---
    def checkpoint(self, uids: List[str]) -> bool:
        """Best effort: a write failure is logged and reported as False."""
        try:
            self.store.write_candidates(uids)
        except CheckpointError as e:
            self.logger.error(f"Failed to write file: {e}")
            return False
        self.logger.info(f"Successfully wrote dashboard uids to file {self.store.path}")
        return True

    def load_checkpoint(self, failures: bool = False) -> List[str]:
        """Raises CheckpointError; there is no work to do without the list."""
        uids = self.store.read_failures() if failures else self.store.read_candidates()
        source = self.store.failures_path if failures else self.store.path
        self.logger.info(f"Loaded {len(uids)} dashboard uids from {source}")
        return uids

    # --- Stage 3: Remediation ---
    def remediate(self, uids: List[str], dry_run: bool = False, capture_content: bool = False,
                  progress_callback: ProgressCallback = None) -> RemediationContext:
        self.logger.info(f"Processing {len(uids)} dashboards")
        context = self.pipeline.run(uids, dry_run=dry_run, capture_content=capture_content,
                                    progress_callback=progress_callback)

        if context.failed:
            self.logger.info(f"Failed to remove exemplars from {len(context.failed)} dashboards. Saving to file")
            try:
                self.store.write_failures(context.failed)
            except CheckpointError as e:
                self.logger.error(f"Failed to write file {self.store.failures_path} with error: {e}")

        summary = self.generate_summary(context)
        self.logger.info(
            f"Completed removing exemplar queries from dashboards. "
            f"{summary['successful']} dashboards successfully processed with {summary['failed']} failures"
        )
        return context

    def run_all(self, params: Optional[Mapping[str, Any]] = None, dry_run: bool = False,
                capture_content: bool = False, scan_progress: ProgressCallback = None,
                fix_progress: ProgressCallback = None) -> Dict[str, Any]:
        """
        Full pipeline: discover, checkpoint, read the checkpoint back, remediate.
        The list that is remediated is always the one read from disk.
        """
        discovery = self.discover(params, progress_callback=scan_progress)
        self.checkpoint(discovery.candidates)
        uids = self.load_checkpoint()
        context = self.remediate(uids, dry_run=dry_run, capture_content=capture_content,
                                 progress_callback=fix_progress)
        return {"discovery": discovery, "remediation": context}

    def generate_summary(self, context: RemediationContext) -> Dict[str, Any]:
        """Counts per status for the final report."""
        statuses: Dict[str, int] = {}
        for r in context.reports:
            statuses[r["status"]] = statuses.get(r["status"], 0) + 1

        total = len(context.reports)
        failed = len(context.failed)
        return {
            "total": total,
            "successful": total - failed,
            "failed": failed,
            "remediated": statuses.get("REMEDIATED", 0),
            "previewed": statuses.get("PREVIEW", 0),
            "unchanged": statuses.get("UNCHANGED", 0),
            "changes": sum(r.get("changes", 0) for r in context.reports if r.get("success")),
            "statuses": statuses,
            "dry_run": context.dry_run,
            "failures_file": str(self.store.failures_path) if failed else None,
            "summary_timestamp": time.strftime("%Y-%m-%d %H:%M:%S"),
        }
