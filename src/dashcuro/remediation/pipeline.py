#!/usr/bin/env python3
"""
DASHCURO REMEDIATION PIPELINE - The Surgeon
-------------------------------------------
Disables the exemplar option on a list of dashboards, one at a time:

    fetch -> serialise -> rewrite -> parse -> save (overwrite)

Each step that can fail marks the dashboard as failed and moves on to the
next UID. Only errors outside the per-item classes (Grafana API errors,
JSON serialisation and parse errors) escape the loop.

Author: DashCuro Team
Date: 2026-10-18
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from dashcuro.client.grafana import GrafanaClient, GrafanaError
from dashcuro.remediation.context import RemediationContext
from dashcuro.rules.exemplar import ExemplarRule

PROGRESS_EVERY = 5
SAVE_MESSAGE = "dashcuro: disable exemplar queries"

class RemediationPipeline:
    """
    Remediation stage. Consumes a checkpointed UID list and returns a
    RemediationContext whose `failed` list can be written out for a retry.
    """

    def __init__(self, client: GrafanaClient, rule: Optional[ExemplarRule] = None,
                 logger: Optional[logging.Logger] = None, save_message: str = SAVE_MESSAGE):
        self.client = client
        self.rule = rule or ExemplarRule()
        self.logger = logger or logging.getLogger("dashcuro.pipeline")
        self.save_message = save_message

    def run(self, uids: List[str], dry_run: bool = False, capture_content: bool = False,
            progress_callback: Optional[Callable[[int, int], None]] = None) -> RemediationContext:
        context = RemediationContext(uids=list(uids), dry_run=dry_run)
        total = len(context.uids)

        for i, uid in enumerate(context.uids):
            if i % PROGRESS_EVERY == 0:
                self.logger.info(f"Processed {i} / {total} dashboards")

            context.record(self.remediate_one(uid, dry_run=dry_run, capture_content=capture_content))

            if progress_callback:
                progress_callback(i + 1, total)

        return context

    def remediate_one(self, uid: str, dry_run: bool = False, capture_content: bool = False) -> Dict[str, Any]:
        """Runs the five steps for one UID and returns its report."""
        try:
            dashboard = self.client.get_dashboard_by_uid(uid)
        except GrafanaError as e:
            self.logger.error(f"Failed to get dashboard {uid} from Grafana: {e}")
            return self._report(uid, "FETCH_FAILED", error=str(e))

        slug = dashboard.slug
        self.logger.info(f"Successfully retrieved dashboard from Grafana: {slug}")

        try:
            serialized = self.rule.serialize(dashboard.model)
        except (TypeError, ValueError) as e:
            self.logger.error(f"Failed to serialize dashboard {slug} JSON: {e}")
            return self._report(uid, "SERIALIZE_FAILED", slug=slug, error=str(e))

        try:
            processed_model, changes = self.rule.apply(serialized)
        except ValueError as e:
            self.logger.error(f"Failed to parse processed dashboard model {slug}: {e}")
            return self._report(uid, "PARSE_FAILED", slug=slug, error=str(e))

        report = self._report(uid, "UNCHANGED", success=True, slug=slug, changes=changes)
        if capture_content:
            report["before"] = serialized
            report["after"] = self.rule.serialize(processed_model)

        if changes == 0:
            self.logger.info(f"No enabled exemplar queries left in dashboard: {slug}")
            return report

        self.logger.info(f"Successfully disabled {changes} exemplar queries in dashboard: {slug}")
        if dry_run:
            report["status"] = "PREVIEW"
            return report

        dashboard.model = processed_model
        dashboard.overwrite = True
        try:
            save_result = self.client.save_dashboard(dashboard, message=self.save_message)
        except GrafanaError as e:
            self.logger.error(f"Failed to update processed dashboard {slug} in Grafana: {e}")
            report.update(status="SAVE_FAILED", success=False, error=str(e))
            return report

        self.logger.info(f"Dashboard save response from Grafana: {save_result}")
        report.update(status="REMEDIATED", version=save_result.version)
        return report

    def _report(self, uid: str, status: str, success: bool = False, slug: Optional[str] = None,
                changes: int = 0, error: Optional[str] = None) -> Dict[str, Any]:
        return {
            "uid": uid, "slug": slug or uid, "status": status,
            "success": success, "changes": changes, "version": None, "error": error,
        }

def remove_exemplars_from_dashboards(client: GrafanaClient, uids: List[str],
                                     rule: Optional[ExemplarRule] = None,
                                     logger: Optional[logging.Logger] = None) -> List[str]:
    """
    Disables exemplars on every dashboard in `uids` and saves it back.
    Returns the UIDs that could not be processed.
    """
    return RemediationPipeline(client, rule=rule, logger=logger).run(uids).failed
