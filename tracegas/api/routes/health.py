"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from tracegas import __version__
from tracegas.analyzer.patterns import DEFAULT_PATTERNS

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Quick liveness probe."""
    return {
        "status": "healthy",
        "service": "tracegas",
        "version": __version__,
        "patterns": len(DEFAULT_PATTERNS),
    }
