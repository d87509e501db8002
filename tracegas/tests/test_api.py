"""API tests — an ``httpx.AsyncClient`` bound to the FastAPI app.

Usage:

    @pytest.mark.asyncio
    async def test_health(client: AsyncClient):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from tracegas.api.main import create_app
from tracegas.api.routes.analysis import get_orchestrator
from tracegas.core.config import Settings
from tracegas.pipeline.orchestrator import AnalysisOrchestrator
from tracegas.tests.conftest import ROUTER, USER


@pytest_asyncio.fixture
async def app() -> FastAPI:
    """Create a fresh app for testing."""
    return create_app()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Health ───────────────────────────────────────────────────────────────


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        resp = await client.get("/api/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["patterns"] == 16


# ── Analysis ─────────────────────────────────────────────────────────────


class TestAnalysis:

    @pytest.mark.asyncio
    async def test_analyze_both(self, client: AsyncClient, struct_log_payload, call_trace_payload):
        resp = await client.post(
            "/api/v1/analysis",
            json={"structLog": struct_log_payload, "callTrace": call_trace_payload},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "both"
        assert data["totalGasUsed"] == 50000
        assert data["callHierarchy"]["rootIds"] == ["c0"]
        assert "optimizationFindings" in data
        assert data["valueTransfers"][0]["from"] == ROUTER

    @pytest.mark.asyncio
    async def test_analyze_empty_body(self, client: AsyncClient):
        resp = await client.post("/api/v1/analysis", json={})
        assert resp.status_code == 200
        data = resp.json()
        assert data["source"] == "neither"
        assert data["totalGasUsed"] == 0
        assert data["optimizationFindings"] == []

    @pytest.mark.asyncio
    async def test_custom_pricing(self, client: AsyncClient, struct_log_payload):
        resp = await client.post(
            "/api/v1/analysis",
            json={
                "structLog": struct_log_payload,
                "pricing": {"gasPriceGwei": 1, "nativeUsdPrice": 1000},
            },
        )
        assert resp.status_code == 200
        top = resp.json()["costAnalysis"][0]
        assert top["label"] == "Storage"
        assert top["costWei"] == 20000 * 10**9

    @pytest.mark.asyncio
    async def test_validation_envelope(self, client: AsyncClient):
        resp = await client.post(
            "/api/v1/analysis",
            json={
                "structLog": {"steps": [{"step": 0, "opcode": "ADD", "gasCost": -1}]},
                "callTrace": {"callData": [
                    {"id": "c0", "from": USER, "to": ROUTER, "success": False},
                ]},
            },
            headers={"X-Request-ID": "req-42"},
        )
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["request_id"] == "req-42"
        types = {d["type"] for d in error["details"]}
        assert "success_error_mismatch" in types
        assert "greater_than_equal" in types
        sources = {d["source"] for d in error["details"]}
        assert sources == {"struct_log", "call_trace"}

    @pytest.mark.asyncio
    async def test_payload_too_large(self, app: FastAPI, client: AsyncClient):
        app.dependency_overrides[get_orchestrator] = lambda: AnalysisOrchestrator(
            Settings(max_trace_calls=1)
        )
        resp = await client.post(
            "/api/v1/analysis",
            json={"callTrace": {"callData": [
                {"id": f"c{i}", "from": USER, "to": ROUTER, "traceAddress": [i]}
                for i in range(2)
            ]}},
        )
        assert resp.status_code == 413
        assert resp.json()["error"]["code"] == "PAYLOAD_TOO_LARGE"

    @pytest.mark.asyncio
    async def test_malformed_body(self, client: AsyncClient):
        resp = await client.post("/api/v1/analysis", json={"structLog": "steps"})
        assert resp.status_code == 422
        error = resp.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        detail = error["details"][0]
        assert detail["source"] == "request"
        assert detail["field"] == "structLog"
        assert set(detail) == {"source", "field", "message", "type"}

    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient):
        resp = await client.get("/api/v1/nope")
        assert resp.status_code == 404
        assert resp.json()["error"]["code"] == "NOT_FOUND"

    @pytest.mark.asyncio
    async def test_wrong_method(self, client: AsyncClient):
        resp = await client.get("/api/v1/analysis", headers={"X-Request-ID": "req-7"})
        assert resp.status_code == 405
        error = resp.json()["error"]
        assert error["code"] == "METHOD_NOT_ALLOWED"
        assert error["request_id"] == "req-7"
        assert error["details"] is None

    @pytest.mark.asyncio
    async def test_deep_call_chain_serializes(self, client: AsyncClient):
        depth = 300
        calls = [{"id": "n0", "traceAddress": [], "from": USER, "to": ROUTER, "gasUsed": 1}]
        calls += [
            {"id": f"n{i}", "parentId": f"n{i - 1}", "traceAddress": [0] * i,
             "from": ROUTER, "to": ROUTER, "gasUsed": 1}
            for i in range(1, depth)
        ]
        resp = await client.post("/api/v1/analysis", json={"callTrace": {"callData": calls}})
        assert resp.status_code == 200
        hierarchy = resp.json()["callHierarchy"]
        assert hierarchy["rootIds"] == ["n0"]
        assert len(hierarchy["nodes"]) == depth
        assert hierarchy["nodes"][0]["childIds"] == ["n1"]


class TestPatterns:

    @pytest.mark.asyncio
    async def test_list_patterns(self, client: AsyncClient):
        resp = await client.get("/api/v1/analysis/patterns")
        assert resp.status_code == 200
        data = resp.json()
        assert data["total"] == 16
        ids = [p["id"] for p in data["patterns"]]
        assert ids[0] == "storage-packing"
        assert "deep-call-stack" in ids
