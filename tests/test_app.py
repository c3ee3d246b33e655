"""HTTP contract tests for the FastAPI application."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import adinsights.app as app_module
from adinsights.analytics import SourceRegistry
from adinsights.config import reset_settings
from adinsights.domain import SOURCE_FIELD
from adinsights.integrations import llm_client

from conftest import FakeResponse, RecordingPost


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def client(monkeypatch, test_settings, two_sources):
    monkeypatch.setattr(app_module, "get_settings", lambda: test_settings)
    previous = app_module.get_registry()
    app_module.set_registry(SourceRegistry(two_sources))
    yield TestClient(app_module.app)
    app_module.set_registry(previous)


@pytest.fixture
def gemini_ok(monkeypatch) -> RecordingPost:
    post = RecordingPost(FakeResponse(200, {
        "candidates": [{"content": {"parts": [{"text": "Account z leads."}]}}],
        "usageMetadata": {"promptTokenCount": 100, "candidatesTokenCount": 20, "totalTokenCount": 120},
    }))
    monkeypatch.setattr(llm_client.requests, "post", post)
    return post


def _insight_body(**overrides) -> dict:
    body = {
        "prompt": "Which account leads?",
        "data": [{"account": "z", "score": 9}],
        "dataSource": "B",
        "totalRows": 3,
        "filteredRows": 1,
        "provider": "gemini-pro",
    }
    body.update(overrides)
    return body


# ============================================================================
# Insights
# ============================================================================

class TestInsightRoutes:

    def test_success(self, client, gemini_ok):
        resp = client.post("/api/insights", json=_insight_body())
        assert resp.status_code == 200
        assert resp.json() == {
            "text": "Account z leads.",
            "tokenUsage": {"inputTokens": 100, "outputTokens": 20, "totalTokens": 120},
        }
        assert len(gemini_ok.calls) == 1

    def test_legacy_path(self, client, gemini_ok):
        assert client.post("/insights", json=_insight_body()).status_code == 200

    def test_missing_prompt_is_400(self, client, gemini_ok):
        resp = client.post("/api/insights", json=_insight_body(prompt=""))
        assert resp.status_code == 400
        assert resp.json() == {"error": "Missing required fields: prompt and data"}
        assert gemini_ok.calls == []

    def test_malformed_body_is_400(self, client, gemini_ok):
        resp = client.post("/api/insights", json=_insight_body(data="not rows"))
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid request body"

    def test_provider_failure_is_200_with_error(self, client, monkeypatch):
        monkeypatch.setattr(llm_client.requests, "post", RecordingPost(FakeResponse(500, {}, reason="Server Error")))
        resp = client.post("/api/insights", json=_insight_body())
        assert resp.status_code == 200
        body = resp.json()
        assert body["text"] == ""
        assert body["error"].startswith("Failed to generate insights using gemini-pro: Google AI API error: 500")

    def test_unexpected_failure_is_500(self, client, monkeypatch):
        class Exploding:
            async def generate_insight(self, request):
                raise RuntimeError("boom")

        monkeypatch.setattr(app_module, "_insight_service", lambda: Exploding())
        resp = client.post("/api/insights", json=_insight_body())
        assert resp.status_code == 500
        assert resp.json() == {"error": "Failed to generate insights", "details": "boom"}


# ============================================================================
# Sources + Analysis
# ============================================================================

class TestAnalysisRoutes:

    def test_list_sources(self, client):
        body = client.get("/api/sources").json()
        assert body["total"] == 2
        assert body["default"] == "A"
        assert body["sources"][0] == {"id": "A", "displayName": "A", "rowCount": 2, "available": True}

    def test_refresh_without_sheet_url_is_502(self, client):
        assert client.post("/api/sources/refresh").status_code == 502

    def test_analysis(self, client):
        resp = client.post("/api/analysis", json={
            "sources": ["A", "B"],
            "filters": [{"column": "score", "operator": "greater than", "value": 4}],
            "sort": {"column": "score", "direction": "desc"},
        })
        assert resp.status_code == 200
        body = resp.json()
        assert [(r["account"], r["score"], r[SOURCE_FIELD]) for r in body["preview"]] == [("z", 9, "B"), ("y", 7, "A")]
        assert body["totalRows"] == 3
        assert body["combinedRows"] == 3
        assert body["filteredRows"] == 2
        assert body["summary"]["totalRows"] == 2
        assert body["summary"]["metrics"]["score"] == {"min": 7.0, "max": 9.0, "avg": 8.0, "sum": 16.0}
        assert [c["name"] for c in body["columns"]] == ["account", "score"]

    def test_unknown_source_is_400(self, client):
        resp = client.post("/api/analysis", json={"sources": ["Nope"]})
        assert resp.status_code == 400
        assert "Nope" in resp.json()["error"]

    def test_operator_mismatch_is_400(self, client):
        resp = client.post("/api/analysis", json={
            "sources": ["A"],
            "filters": [{"column": "score", "operator": "contains", "value": "1"}],
        })
        assert resp.status_code == 400

    def test_operators(self, client):
        body = client.get("/api/operators").json()
        assert set(body) == {"dimension", "metric", "date"}
        assert "greater than" in body["metric"]


# ============================================================================
# Settings + Health
# ============================================================================

class TestSettingsRoutes:

    def test_settings_never_expose_keys(self, client):
        body = client.get("/api/settings").json()
        assert body["gemini_api_key_set"] is True
        assert "gemini_api_key" not in body

    def test_config_update(self):
        try:
            resp = TestClient(app_module.app).post("/api/config", json={"default_currency": "EUR", "row_limit_per_source": 50})
            assert resp.status_code == 200
            settings = resp.json()["settings"]
            assert settings["default_currency"] == "EUR"
            assert settings["row_limit_per_source"] == 50
        finally:
            reset_settings()

    def test_config_rejects_bad_values(self):
        resp = TestClient(app_module.app).post("/api/config", json={"temperature": 9})
        assert resp.status_code == 400

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["backend"]["status"] == "ok"
        assert body["sheet_endpoint"]["status"] == "unavailable"
        assert body["providers"]["gemini-pro"]["status"] == "ok"

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "ok"
        assert body["sources_loaded"] == 2
