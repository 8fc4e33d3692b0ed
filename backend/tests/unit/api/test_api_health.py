# tests/unit/api/test_api_health.py
from __future__ import annotations

from tokenlife.services._shared.errors import StoreUnavailableError


def test_health_reports_backends(client, engine):
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["status"] == "ok"
    assert body["db"] == "ok"
    assert body["denylist"] == {"backend": "memory", "status": "ok"}
    assert body["scheduler"] is False


def test_health_degrades_when_denylist_is_down(client, engine, monkeypatch):
    def unavailable():
        raise StoreUnavailableError("denylist")

    monkeypatch.setattr(engine.revocation_cache, "count", unavailable)

    resp = client.get("/api/v1/health")

    assert resp.status_code == 503
    assert resp.get_json()["denylist"]["status"] == "fail"
