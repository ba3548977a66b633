import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from dashcuro.client.grafana import GrafanaClient

BASE_URL = "http://grafana.test"


def panel(exemplar: Optional[bool] = None, expr: str = "up") -> Dict[str, Any]:
    target: Dict[str, Any] = {"expr": expr, "refId": "A"}
    if exemplar is not None:
        target["exemplar"] = exemplar
    return {"type": "timeseries", "title": expr, "targets": [target]}


def dashboard_model(uid: str, *panels: Dict[str, Any], **extra: Any) -> Dict[str, Any]:
    model = {"uid": uid, "title": f"Dashboard {uid}", "version": 1, "panels": list(panels)}
    model.update(extra)
    return model


class FakeGrafana:
    """
    In-memory Grafana serving the search, fetch and save endpoints through
    httpx.MockTransport.
    """

    def __init__(self, dashboards: Optional[List[Dict[str, Any]]] = None):
        self.dashboards: Dict[str, Dict[str, Any]] = {}
        self.folders: Dict[str, str] = {}
        self.fail_fetch = set()
        self.fail_save = set()
        self.fail_list = False
        self.raw_bodies: Dict[str, bytes] = {}
        self.saves: List[Dict[str, Any]] = []
        self.requests: List[httpx.Request] = []
        for model in dashboards or []:
            self.add(model)

    def add(self, model: Dict[str, Any], folder_uid: str = "") -> None:
        self.dashboards[model["uid"]] = model
        self.folders[model["uid"]] = folder_uid

    @staticmethod
    def _json(status: int, payload: Any) -> httpx.Response:
        return httpx.Response(status, content=json.dumps(payload).encode("utf-8"),
                              headers={"Content-Type": "application/json"})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path == "/api/search":
            if self.fail_list:
                return self._json(500, {"message": "database is locked"})
            return self._search(request)

        if request.method == "GET" and path.startswith("/api/dashboards/uid/"):
            uid = path.rsplit("/", 1)[-1]
            if uid in self.fail_fetch:
                return self._json(500, {"message": "internal error"})
            if uid in self.raw_bodies:
                return httpx.Response(200, content=self.raw_bodies[uid],
                                      headers={"Content-Type": "application/json"})
            if uid not in self.dashboards:
                return self._json(404, {"message": "Dashboard not found"})
            model = self.dashboards[uid]
            meta = {"slug": model["title"].lower().replace(" ", "-"), "folderUid": self.folders[uid]}
            return self._json(200, {"dashboard": model, "meta": meta})

        if request.method == "POST" and path == "/api/dashboards/db":
            body = json.loads(request.content)
            uid = body["dashboard"]["uid"]
            if uid in self.fail_save:
                return self._json(412, {"message": "version-mismatch", "status": "version-mismatch"})
            self.saves.append(body)
            version = int(body["dashboard"].get("version") or 0) + 1
            self.dashboards[uid] = dict(body["dashboard"], version=version)
            return self._json(200, {"uid": uid, "status": "success", "version": version,
                                    "url": f"/d/{uid}"})

        return self._json(404, {"message": "not found"})

    def _search(self, request: httpx.Request) -> httpx.Response:
        params = request.url.params
        hits = []
        for uid, model in self.dashboards.items():
            query = params.get("query")
            if query and query.lower() not in model["title"].lower():
                continue
            tags = params.get_list("tag")
            if tags and not set(tags) <= set(model.get("tags", [])):
                continue
            hits.append({"uid": uid, "title": model["title"], "type": "dash-db", "url": f"/d/{uid}"})

        limit = int(params.get("limit", len(hits) or 1))
        page = int(params.get("page", 1))
        return self._json(200, hits[(page - 1) * limit: page * limit])

    def saved_model(self, uid: str) -> Dict[str, Any]:
        return next(s["dashboard"] for s in reversed(self.saves) if s["dashboard"]["uid"] == uid)

    def client(self) -> GrafanaClient:
        http_client = httpx.Client(transport=httpx.MockTransport(self.handler))
        return GrafanaClient(BASE_URL, "test-token", http_client=http_client)


@pytest.fixture
def grafana() -> FakeGrafana:
    return FakeGrafana()
