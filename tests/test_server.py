"""Tests for the editor bridge server."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from llm_lint.config import ReviewSettings
from llm_lint.llm_client import LLMRequestError
from llm_lint.models.document import ModelResponse
from llm_lint.orchestrator import LintOrchestrator
from llm_lint.server import create_app
from llm_lint.sinks import InMemoryDiagnosticsSink
from llm_lint.store import ResultStore

URI = "file:///ws/src/app.py"


@pytest.fixture
def llm():
    mock = MagicMock()
    mock.close = AsyncMock()
    mock.request_review = AsyncMock(
        return_value=ModelResponse(
            tool_arguments={
                "reviews": [
                    {"severity": "ERROR", "message": "user may be None",
                     "codeSnippet": "return user.name"},
                    {"severity": "HINT", "message": "add docstring"},
                ]
            }
        )
    )
    return mock


@pytest.fixture
def orchestrator(llm) -> LintOrchestrator:
    return LintOrchestrator(
        client=llm,
        store=ResultStore(),
        settings=ReviewSettings(auto_review_on_open=False),
        diagnostics=InMemoryDiagnosticsSink(),
        workspace_folders=["/ws"],
    )


@pytest.fixture
def client(orchestrator):
    with TestClient(create_app(orchestrator)) as test_client:
        yield test_client


@pytest.fixture
def review_body(sample_source) -> dict:
    return {"uri": URI, "path": "/ws/src/app.py", "text": sample_source, "language_id": "python"}


class TestServer:
    """Tests for the FastAPI bridge."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["auto_review"] == {"on_open": False, "on_save": True}

    def test_review_returns_findings_and_diagnostics(self, client, review_body):
        response = client.post("/review", json=review_body)

        assert response.status_code == 200
        data = response.json()
        assert [f["severity"] for f in data["findings"]] == ["ERROR", "HINT"]
        assert data["findings"][0]["line"] == 4
        assert data["diagnostics"][0]["range"]["start"] == {"line": 4, "column": 4}
        assert data["diagnostics"][1]["range"]["start"] == {"line": 0, "column": 0}

    def test_second_review_hits_cooldown_unless_forced(self, client, review_body, llm):
        client.post("/review", json=review_body)

        skipped = client.post("/review", json=review_body).json()
        forced = client.post("/review", json={**review_body, "force": True}).json()

        assert skipped == {"uri": URI, "skipped": "cooldown"}
        assert "findings" in forced
        assert llm.request_review.await_count == 2

    def test_upstream_failure_reported_as_skipped(self, client, review_body, llm):
        llm.request_review.side_effect = LLMRequestError("HTTP 503")

        data = client.post("/review", json=review_body).json()

        assert data["skipped"] == "request failed"

    def test_results_and_clear(self, client, review_body):
        client.post("/review", json=review_body)

        results = client.get("/results").json()
        assert results["badge"]["value"] == 2
        (doc,) = results["documents"]
        assert doc["label"] == "/src/app.py (Errors: 1, Hints: 1)"
        assert doc["count"] == 2
        assert doc["counts"]["ERROR"] == 1

        assert client.post("/clear", json={"uri": URI}).json() == {"status": "ok"}

        results = client.get("/results").json()
        assert results == {"badge": None, "documents": []}
        assert client.get("/diagnostics", params={"uri": URI}).json()["diagnostics"] == []

    def test_diagnostics_endpoint(self, client, review_body):
        client.post("/review", json=review_body)

        data = client.get("/diagnostics", params={"uri": URI}).json()

        assert len(data["diagnostics"]) == 2
        assert data["diagnostics"][0]["source"] == "LLM Reviewer"

    def test_invalid_json(self, client):
        response = client.post(
            "/review", content=b"{nope", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400

    def test_missing_field(self, client):
        response = client.post("/review", json={"uri": URI})

        assert response.status_code == 422
        assert "text" in response.json()["detail"]

    def test_clear_requires_uri(self, client):
        assert client.post("/clear", json={}).status_code == 422

    def test_disabled_trigger_skips_review(self, client, review_body, llm):
        data = client.post("/review", json={**review_body, "trigger": "open"}).json()

        assert data == {"uri": URI, "skipped": "auto review disabled"}
        llm.request_review.assert_not_awaited()

    def test_enabled_trigger_runs_review(self, client, review_body, llm):
        data = client.post("/review", json={**review_body, "trigger": "save"}).json()

        assert len(data["findings"]) == 2
        llm.request_review.assert_awaited_once()

    def test_unknown_trigger(self, client, review_body, llm):
        response = client.post("/review", json={**review_body, "trigger": "focus"})

        assert response.status_code == 422
        llm.request_review.assert_not_awaited()


class TestAutoReviewDisabled:
    """Bridge behaviour with both auto-review toggles off."""

    @pytest.fixture
    def client(self, llm):
        orchestrator = LintOrchestrator(
            client=llm,
            store=ResultStore(),
            settings=ReviewSettings(auto_review_on_open=False, auto_review_on_save=False),
            diagnostics=InMemoryDiagnosticsSink(),
            workspace_folders=["/ws"],
        )
        with TestClient(create_app(orchestrator)) as test_client:
            yield test_client

    def test_unforced_review_skipped(self, client, review_body, llm):
        data = client.post("/review", json=review_body).json()

        assert data["skipped"] == "auto review disabled"
        llm.request_review.assert_not_awaited()

    def test_forced_review_still_runs(self, client, review_body, llm):
        data = client.post("/review", json={**review_body, "force": True}).json()

        assert "findings" in data
        llm.request_review.assert_awaited_once()


class TestLifespan:
    """Tests for the app lifespan."""

    def test_model_client_closed_on_shutdown(self, orchestrator, llm):
        with TestClient(create_app(orchestrator)):
            llm.close.assert_not_awaited()

        llm.close.assert_awaited_once()
