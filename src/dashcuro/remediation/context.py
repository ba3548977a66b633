#!/usr/bin/env python3
"""
DASHCURO RUN RECORDS
--------------------
State objects that carry the outcome of a scan or a remediation pass from
the worker classes back to the engine and the CLI.

Author: DashCuro Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from typing import Dict, Any, List

@dataclass
class DiscoveryResult:
    """
    Outcome of a discovery scan.

    `skipped` holds UIDs that could not be fetched or serialised; they are
    neither candidates nor retryable failures, but are surfaced so they do
    not disappear from the operator's view.
    """
    candidates: List[str] = field(default_factory=list)   # UIDs with exemplars enabled
    scanned: int = 0                                       # Dashboards enumerated
    skipped: List[str] = field(default_factory=list)      # Fetch/serialise failures

@dataclass
class RemediationContext:
    """
    Maintains the state of one remediation pass.

    Every UID handed to the pipeline produces exactly one report. A UID is in
    `failed` if and only if its report has success=False.
    """
    uids: List[str] = field(default_factory=list)              # Input, in processing order
    failed: List[str] = field(default_factory=list)            # Retryable failures, in order
    reports: List[Dict[str, Any]] = field(default_factory=list) # One per UID
    dry_run: bool = False

    @property
    def succeeded(self) -> List[str]:
        return [r["uid"] for r in self.reports if r.get("success")]

    def record(self, report: Dict[str, Any]) -> None:
        self.reports.append(report)
        if not report.get("success"):
            self.failed.append(report["uid"])
