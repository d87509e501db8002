"""Shared fixtures for the tracegas test suite."""

from __future__ import annotations

from typing import Any

import pytest

from tracegas.core.config import Settings, get_settings
from tracegas.core.types import (
    CallRecord,
    CallTrace,
    PricingConfig,
    StructLogTrace,
    TraceStep,
)

USER = "0x00000000000000000000000000000000000000aa"
ROUTER = "0x1111111111111111111111111111111111111111"
TOKEN = "0x2222222222222222222222222222222222222222"
POOL = "0x3333333333333333333333333333333333333333"


def make_steps(*ops: tuple[str, int], depth: int = 1) -> list[TraceStep]:
    """Build consecutive steps from ``(opcode, gas_cost)`` pairs."""
    return [
        TraceStep(step=i, opcode=op, gas_cost=gas, depth=depth)
        for i, (op, gas) in enumerate(ops)
    ]


def make_call(
    call_id: str,
    trace_address: list[int],
    to: str,
    gas_used: int,
    parent_id: str | None = None,
    **kwargs: Any,
) -> CallRecord:
    return CallRecord(
        id=call_id,
        parent_id=parent_id,
        trace_address=tuple(trace_address),
        from_address=kwargs.pop("from_address", USER),
        to_address=to,
        gas_used=gas_used,
        **kwargs,
    )


# ── Settings ─────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def pricing() -> PricingConfig:
    return PricingConfig(gas_price_gwei=20.0, native_usd_price=2500.0)


# ── Struct Log Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def sstore_steps() -> list[TraceStep]:
    """Two fresh SSTOREs and an ADD."""
    return make_steps(("SSTORE", 20000), ("SSTORE", 20000), ("ADD", 3))


@pytest.fixture
def mixed_steps() -> list[TraceStep]:
    """A short, realistic execution with memory and stack growth."""
    ops = [
        ("PUSH1", 3, 1, 0),
        ("PUSH1", 3, 2, 0),
        ("MSTORE", 12, 0, 96),
        ("CALLVALUE", 2, 1, 96),
        ("DUP1", 3, 2, 96),
        ("ISZERO", 3, 2, 96),
        ("PUSH2", 3, 3, 96),
        ("JUMPI", 10, 1, 96),
        ("SLOAD", 2100, 1, 96),
        ("SHA3", 42, 2, 128),
    ]
    return [
        TraceStep(
            step=i,
            opcode=op,
            gas_cost=gas,
            depth=1,
            stack_depth=stack,
            memory_size_bytes=mem,
        )
        for i, (op, gas, stack, mem) in enumerate(ops)
    ]


@pytest.fixture
def struct_log_payload() -> dict[str, Any]:
    """Raw camelCase struct log as emitted by the tracer."""
    return {
        "steps": [
            {"step": 0, "opcode": "PUSH1", "gasCost": 3, "depth": 1,
             "stackDepth": 1, "memorySizeBytes": 0},
            {"step": 1, "opcode": "MSTORE", "gasCost": 12, "depth": 1,
             "stackDepth": 0, "memorySizeBytes": 64},
            {"step": 2, "opcode": "SSTORE", "gasCost": 20000, "depth": 1,
             "stackDepth": 0, "memorySizeBytes": 64},
        ],
        "summary": {"totalSteps": 3, "totalGasCost": 20015, "maxStackDepth": 1},
        "topOpcodes": [{"opcode": "SSTORE", "gasUsed": 20000, "count": 1}],
    }


@pytest.fixture
def struct_log(struct_log_payload: dict[str, Any]) -> StructLogTrace:
    return StructLogTrace.model_validate(struct_log_payload)


# ── Call Trace Fixtures ──────────────────────────────────────────────────────


@pytest.fixture
def call_records() -> list[CallRecord]:
    """Root call to a router that calls a token twice and a pool once."""
    return [
        make_call("c0", [], ROUTER, 100_000, contract_label="Router",
                  input_preview="swap(uint256)"),
        make_call("c1", [0], TOKEN, 30_000, parent_id="c0", from_address=ROUTER,
                  contract_label="Token", input_preview="transferFrom(address,address,uint256)"),
        make_call("c2", [1], POOL, 40_000, parent_id="c0", from_address=ROUTER,
                  value_transferred=1.5, input_preview="swap(uint256,uint256)"),
        make_call("c3", [1, 0], TOKEN, 10_000, parent_id="c2", from_address=POOL,
                  contract_label="Token", input_preview="transfer(address,uint256)"),
    ]


@pytest.fixture
def call_trace(call_records: list[CallRecord]) -> CallTrace:
    return CallTrace(call_data=tuple(call_records))


@pytest.fixture
def call_trace_payload() -> dict[str, Any]:
    """Raw camelCase call trace as emitted by the tracer."""
    return {
        "callData": [
            {"id": "c0", "traceAddress": [], "from": USER, "to": ROUTER,
             "type": "CALL", "gasUsed": 50000, "valueTransferred": 0.0},
            {"id": "c1", "parentId": "c0", "traceAddress": [0], "from": ROUTER,
             "to": TOKEN, "type": "STATICCALL", "gasUsed": 8000},
            {"id": "c2", "parentId": "c0", "traceAddress": [1], "from": ROUTER,
             "to": POOL, "type": "CALL", "gasUsed": 12000, "valueTransferred": 0.25,
             "error": "execution reverted"},
        ],
        "transactionStats": {"totalCalls": 3, "totalGas": 50000, "errors": 1},
    }
