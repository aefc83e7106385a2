"""Local HTTP bridge between an editor and one lint session."""

import json
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request

from llm_lint import __version__
from llm_lint.formatter import format_diagnostic, format_finding, format_tree
from llm_lint.models.document import Document
from llm_lint.orchestrator import TRIGGERS, LintOrchestrator
from llm_lint.sinks import InMemoryDiagnosticsSink, build_badge, build_tree
logger = logging.getLogger(__name__)


async def _read_json(request: Request) -> dict:
    body = await request.body()
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON: {e}") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Expected a JSON object")
    return payload


def create_app(orchestrator: LintOrchestrator) -> FastAPI:
    """Create the FastAPI bridge application.

    Args:
        orchestrator: Session whose store and diagnostics the app exposes.
                      Its diagnostics sink must be an InMemoryDiagnosticsSink
                      for ``/diagnostics`` to return anything. Its
                      model client is closed on shutdown.

    Returns:
        FastAPI application
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down bridge, closing model client")
        await orchestrator.client.close()

    app = FastAPI(
        title="LLM Lint",
        description="Local LLM code review for editors",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        settings = orchestrator.settings
        return {
            "status": "healthy",
            "service": "llm-lint",
            "auto_review": {
                "on_open": settings.auto_review_on_open,
                "on_save": settings.auto_review_on_save,
            },
        }

    @app.post("/review")
    async def review(request: Request):
        """Review a document sent by the editor."""
        payload = await _read_json(request)
        try:
            document = Document(
                uri=payload["uri"],
                path=payload.get("path") or payload["uri"],
                text=payload["text"],
                language_id=payload.get("language_id", "plaintext"),
                is_untitled=bool(payload.get("is_untitled", False)),
            )
        except KeyError as e:
            raise HTTPException(status_code=422, detail=f"Missing field: {e.args[0]}") from e

        if payload.get("force"):
            result = await orchestrator.review_now(document)
        else:
            trigger = payload.get("trigger", "save")
            if trigger not in TRIGGERS:
                raise HTTPException(
                    status_code=422,
                    detail=f"Invalid trigger: {trigger!r} (expected one of {', '.join(TRIGGERS)})",
                )
            result = await orchestrator.lint_if_needed(document, trigger)

        if isinstance(result, str):
            return {"uri": document.uri, "skipped": result}

        return {
            "uri": result.uri,
            "findings": [format_finding(f) for f in result.findings],
            "diagnostics": [
                format_diagnostic(d)
                for d in _diagnostics_for(orchestrator, document.uri)
            ],
            "elapsed_ms": result.elapsed_ms,
        }

    @app.post("/clear")
    async def clear(request: Request):
        """Forget a closed document."""
        payload = await _read_json(request)
        uri = payload.get("uri")
        if not uri:
            raise HTTPException(status_code=422, detail="Missing field: uri")
        orchestrator.close_document(uri)
        return {"status": "ok"}

    @app.get("/results")
    async def results():
        """Grouped results for the tree view."""
        store = orchestrator.store
        return format_tree(build_tree(store, orchestrator.workspace_folders), build_badge(store))

    @app.get("/diagnostics")
    async def diagnostics(uri: str):
        """Current diagnostics for one document."""
        return {
            "uri": uri,
            "diagnostics": [format_diagnostic(d) for d in _diagnostics_for(orchestrator, uri)],
        }

    return app


def _diagnostics_for(orchestrator: LintOrchestrator, uri: str):
    if isinstance(orchestrator.diagnostics, InMemoryDiagnosticsSink):
        return orchestrator.diagnostics.get(uri)
    return []
