#!/usr/bin/env python3
"""
DASHCURO SCANNER - The Archeologist
-----------------------------------
Enumerates Grafana dashboards and identifies the ones whose model carries
an enabled exemplar option. Read-only: the scanner never saves anything.

A failure to enumerate is fatal (there is nothing to act on). A failure on
a single dashboard is logged and the dashboard is skipped.

Author: DashCuro Team
Date: 2026-10-18
"""

import logging
from typing import Any, Callable, List, Mapping, Optional

from dashcuro.client.grafana import GrafanaClient, GrafanaError
from dashcuro.core.errors import DiscoveryError
from dashcuro.remediation.context import DiscoveryResult
from dashcuro.rules.exemplar import ExemplarRule

PROGRESS_EVERY = 5

class ExemplarScanner:
    """
    Discovery stage: walks the dashboard list and collects candidate UIDs.
    """

    def __init__(self, client: GrafanaClient, rule: Optional[ExemplarRule] = None,
                 logger: Optional[logging.Logger] = None):
        self.client = client
        self.rule = rule or ExemplarRule()
        self.logger = logger or logging.getLogger("dashcuro.scanner")

    def search_dashboards(self, params: Mapping[str, Any]) -> List[str]:
        """
        Returns the UIDs of dashboards matching Grafana search params
        (query, tag, folderUIDs, ...). Errors are logged and re-raised.
        """
        self.logger.info(f"Searching grafana for dashboards matching params: {dict(params)}")
        try:
            hits = self.client.search_dashboards(params)
        except GrafanaError as e:
            self.logger.error(f"Encountered error when calling the dashboard search API: {e}")
            raise

        self.logger.info(f"Found {len(hits)} dashboards matching search query")
        uids = []
        for hit in hits:
            uids.append(hit.uid)
            self.logger.info(f"Found dashboard matching params with uid: {hit.uid}, title: {hit.title}")
        return uids

    def _enumerate(self, params: Optional[Mapping[str, Any]]) -> List[str]:
        try:
            if params:
                return self.search_dashboards(params)
            return [hit.uid for hit in self.client.list_dashboards()]
        except GrafanaError as e:
            self.logger.error(f"Failed to get dashboards list from Grafana: {e}")
            raise DiscoveryError(f"Failed to get dashboards list from Grafana: {e}") from e

    def find_dashboards_with_exemplars(
        self,
        params: Optional[Mapping[str, Any]] = None,
        progress_callback: Optional[Callable[[int, int], None]] = None,
    ) -> DiscoveryResult:
        """
        Fetches every enumerated dashboard and keeps the ones with an enabled
        exemplar option. Raises DiscoveryError if enumeration fails.
        """
        uids = self._enumerate(params)
        total = len(uids)
        self.logger.info(f"Retrieved {total} dashboards")
        result = DiscoveryResult(scanned=total)

        for i, uid in enumerate(uids):
            if i % PROGRESS_EVERY == 0:
                self.logger.info(f"Processed {i} / {total} dashboards")

            try:
                dashboard = self.client.get_dashboard_by_uid(uid)
                self.logger.info(f"Successfully retrieved dashboard from Grafana: {dashboard.slug}")
                matched = self.rule.matches(dashboard.model)
            except GrafanaError as e:
                self.logger.error(f"Failed to get dashboard {uid} from Grafana: {e}")
                result.skipped.append(uid)
            except (TypeError, ValueError) as e:
                self.logger.error(f"Failed to serialize dashboard {uid} JSON: {e}")
                result.skipped.append(uid)
            else:
                if matched:
                    self.logger.info(f"Found dashboard with exemplars: {dashboard.slug}")
                    result.candidates.append(dashboard.uid or uid)

            if progress_callback:
                progress_callback(i + 1, total)

        return result
