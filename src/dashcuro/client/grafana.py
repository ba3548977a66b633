#!/usr/bin/env python3
"""
DASHCURO GRAFANA CLIENT - The Courier
-------------------------------------
Thin synchronous wrapper around the four Grafana HTTP API calls DashCuro
needs: list, search, fetch-by-uid and save. Every call is a single
blocking round-trip; connection-level retries are delegated to the httpx
transport so the rest of the tool never sees them.

Author: DashCuro Team
Date: 2026-10-18
"""

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, urlparse

import httpx

from dashcuro.core.models import Dashboard, DashboardHit, SaveResult

logger = logging.getLogger("dashcuro.client")

DEFAULT_RETRIES = 3
DEFAULT_TIMEOUT = 30.0
SEARCH_PAGE_LIMIT = 1000


class GrafanaError(RuntimeError):
    """Raised when a Grafana API call does not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class GrafanaTransportError(GrafanaError):
    """The request never produced a usable response (network, timeout, bad body)."""


class GrafanaAPIError(GrafanaError):
    """Grafana answered with an unexpected non-2xx status."""


class DashboardNotFoundError(GrafanaAPIError):
    pass


class DashboardConflictError(GrafanaAPIError):
    """Version mismatch or a dashboard with the same name/uid already exists."""


class DashboardValidationError(GrafanaAPIError):
    """Grafana rejected the submitted dashboard model."""


_STATUS_ERRORS = {
    400: DashboardValidationError,
    404: DashboardNotFoundError,
    409: DashboardConflictError,
    412: DashboardConflictError,
    422: DashboardValidationError,
}


class GrafanaClient:
    """Client for the Grafana dashboard HTTP API."""

    def __init__(
        self,
        base_url: str,
        api_token: str,
        *,
        retries: int = DEFAULT_RETRIES,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("base_url must include scheme and host")
        if not api_token:
            raise ValueError("api_token must not be empty")

        self.base_url = base_url.rstrip("/")
        headers = {
            "Authorization": f"Bearer {api_token}",
            "Accept": "application/json",
        }
        if http_client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers=headers,
                timeout=timeout,
                transport=httpx.HTTPTransport(retries=retries),
            )
        else:
            self._client = http_client
            self._client.base_url = self.base_url
            self._client.headers.update(headers)
        self._owns_client = http_client is None

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "GrafanaClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------
    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except (httpx.HTTPError, UnicodeEncodeError, TypeError, ValueError) as exc:
            raise GrafanaTransportError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            error_cls = _STATUS_ERRORS.get(response.status_code, GrafanaAPIError)
            raise error_cls(
                f"{method} {path} returned {response.status_code}: {self._error_message(response)}",
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise GrafanaTransportError(
                f"{method} {path} returned a non-JSON body", status_code=response.status_code
            ) from exc

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text[:200]
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return str(body)[:200]

    # ------------------------------------------------------------------
    # API surface
    # ------------------------------------------------------------------
    def search_dashboards(self, params: Optional[Mapping[str, Any]] = None) -> List[DashboardHit]:
        """
        Folder/dashboard search (GET /api/search). `params` is passed
        through as query parameters: query, tag, folderUIDs, type, limit...
        """
        payload = self._request("GET", "/api/search", params=dict(params or {}))
        if not isinstance(payload, list):
            raise GrafanaTransportError("search response is not a list")
        return [DashboardHit.from_api(item) for item in payload if isinstance(item, dict)]

    def list_dashboards(self, page_limit: int = SEARCH_PAGE_LIMIT) -> List[DashboardHit]:
        """Every dashboard visible to the token, following search pagination."""
        hits: List[DashboardHit] = []
        page = 1
        while True:
            batch = self.search_dashboards({"type": "dash-db", "limit": page_limit, "page": page})
            hits.extend(batch)
            if len(batch) < page_limit:
                break
            page += 1
        logger.debug(f"Listed {len(hits)} dashboards over {page} page(s)")
        return hits

    def get_dashboard_by_uid(self, uid: str) -> Dashboard:
        payload = self._request("GET", f"/api/dashboards/uid/{quote(uid, safe='')}")
        if not isinstance(payload, dict) or not isinstance(payload.get("dashboard"), dict):
            raise GrafanaTransportError(f"dashboard {uid} response has no dashboard model")
        dashboard = Dashboard.from_api(payload)
        if not dashboard.uid:
            dashboard.uid = uid
        return dashboard

    def save_dashboard(self, dashboard: Dashboard, message: Optional[str] = None) -> SaveResult:
        body: Dict[str, Any] = {
            "dashboard": dashboard.model,
            "overwrite": dashboard.overwrite,
        }
        if dashboard.folder_uid:
            body["folderUid"] = dashboard.folder_uid
        elif dashboard.folder_id is not None:
            body["folderId"] = dashboard.folder_id
        if message:
            body["message"] = message

        payload = self._request("POST", "/api/dashboards/db", json=body)
        if not isinstance(payload, dict):
            raise GrafanaTransportError("save response is not an object")
        result = SaveResult.from_api(payload)
        if not result.uid:
            result.uid = dashboard.uid
        return result
