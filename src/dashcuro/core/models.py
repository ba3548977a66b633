#!/usr/bin/env python3
"""
DASHCURO CORE MODELS
--------------------
Defines the data structures exchanged between the Grafana client, the
scanner and the remediation pipeline. The dashboard model itself is kept
as a plain JSON tree; only the envelope around it is typed.

Author: DashCuro Team
Date: 2026-10-18
"""

from dataclasses import dataclass, field
from typing import Optional, Any, Dict

@dataclass
class DashboardHit:
    """
    A single row returned by the Grafana search API.

    Search rows are cheap summaries; the full model has to be fetched
    separately by UID.
    """
    uid: str                             # Stable dashboard identifier
    title: str = ""                      # Human-readable dashboard title
    folder_title: Optional[str] = None   # Containing folder (None for General)
    url: Optional[str] = None            # Relative URL inside Grafana

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "DashboardHit":
        return cls(
            uid=str(payload.get("uid", "")),
            title=payload.get("title", ""),
            folder_title=payload.get("folderTitle"),
            url=payload.get("url"),
        )

@dataclass
class Dashboard:
    """
    A dashboard as returned by GET /api/dashboards/uid/:uid.

    `model` is the raw dashboard JSON (panels, targets, templating, ...).
    `overwrite` is sent with the save request and tells Grafana to replace
    the stored version even when the version counters disagree.
    """
    uid: str
    model: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)
    overwrite: bool = False

    @property
    def slug(self) -> str:
        return self.meta.get("slug") or self.model.get("title", "") or self.uid

    @property
    def folder_uid(self) -> Optional[str]:
        return self.meta.get("folderUid") or None

    @property
    def folder_id(self) -> Optional[int]:
        return self.meta.get("folderId")

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Dashboard":
        model = payload.get("dashboard") or {}
        meta = payload.get("meta") or {}
        return cls(uid=str(model.get("uid", "")), model=model, meta=meta)

@dataclass
class SaveResult:
    """Response of POST /api/dashboards/db."""
    uid: str
    status: str = ""
    version: Optional[int] = None
    url: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "SaveResult":
        return cls(
            uid=str(payload.get("uid", "")),
            status=payload.get("status", ""),
            version=payload.get("version"),
            url=payload.get("url"),
        )
