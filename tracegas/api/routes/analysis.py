"""Analysis endpoints — run the trace pipeline and list optimization patterns."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import Field

from tracegas.analyzer.patterns import DEFAULT_PATTERNS
from tracegas.core.errors import AnalysisFailure, TraceGasError
from tracegas.core.types import CamelModel
from tracegas.pipeline.orchestrator import AnalysisOrchestrator

router = APIRouter()


# ── Schemas ──────────────────────────────────────────────────────────────────


class AnalysisRequest(CamelModel):
    """Raw traces as emitted by the upstream tracer.

    Payloads are kept as plain objects here so that every problem is
    reported by the trace validator in one response.
    """

    struct_log: dict[str, Any] | None = Field(None, description="Struct log trace")
    call_trace: dict[str, Any] | None = Field(None, description="Call trace")
    pricing: dict[str, Any] | None = Field(
        None, description="Gas and native-currency pricing; defaults from settings"
    )


@lru_cache
def get_orchestrator() -> AnalysisOrchestrator:
    return AnalysisOrchestrator()


# ── Routes ───────────────────────────────────────────────────────────────────


@router.post("")
async def run_analysis(
    request: AnalysisRequest,
    orchestrator: AnalysisOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    """Analyze a struct log and/or call trace."""
    result = await orchestrator.analyze_async(
        struct_log=request.struct_log,
        call_trace=request.call_trace,
        pricing=request.pricing,
    )
    if isinstance(result, AnalysisFailure):
        raise TraceGasError.from_failure(result)
    return JSONResponse(content=result.model_dump(mode="json", by_alias=True))


@router.get("/patterns")
async def list_patterns() -> dict:
    """List the default optimization pattern table."""
    patterns = [p.describe() for p in DEFAULT_PATTERNS]
    return {"patterns": patterns, "total": len(patterns)}
