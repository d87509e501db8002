"""Base optimization pattern definition and the context patterns inspect."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from tracegas.analyzer.call_trace import CallTraceAggregate
from tracegas.analyzer.struct_log import StructLogAggregate
from tracegas.analyzer.unified import TraceInput
from tracegas.core.ratios import safe_ratio
from tracegas.core.types import (
    Category,
    FindingSeverity,
    FunctionCallStat,
    PatternCategory,
    Recommendation,
    Resource,
    UnifiedGasModel,
)


@dataclass
class PatternContext:
    """Context passed to every pattern during detection.

    Wraps the aggregates of one transaction and the unified total so that
    predicates never reach into raw traces.
    """

    total_gas: int = 0
    struct_log: StructLogAggregate | None = None
    call_trace: CallTraceAggregate | None = None

    @classmethod
    def build(cls, trace_input: TraceInput, model: UnifiedGasModel) -> "PatternContext":
        struct_log, call_trace = trace_input.aggregates()
        return cls(
            total_gas=model.total_gas_used,
            struct_log=struct_log,
            call_trace=call_trace,
        )

    # ── Helper accessors ─────────────────────────────────────────────────

    def opcode_count(self, *opcodes: str) -> int:
        if self.struct_log is None:
            return 0
        return self.struct_log.opcode_count(*opcodes)

    def opcode_gas(self, *opcodes: str) -> int:
        if self.struct_log is None:
            return 0
        return self.struct_log.opcode_gas(*opcodes)

    def has_any_opcode(self, opcodes: tuple[str, ...]) -> bool:
        return self.opcode_count(*opcodes) > 0

    def category_gas(self, category: Category) -> int:
        if self.struct_log is None:
            return 0
        return sum(c.gas_used for c in self.struct_log.category_totals if c.category == category)

    def category_share(self, category: Category) -> float:
        """Percentage of struct-log gas spent in ``category``."""
        if self.struct_log is None:
            return 0.0
        return sum(
            c.percentage_of_total
            for c in self.struct_log.category_totals
            if c.category == category
        )

    @property
    def avg_gas_per_step(self) -> float:
        if self.struct_log is None:
            return 0.0
        return self.struct_log.performance.avg_gas_per_step

    @property
    def memory_spikes(self) -> int:
        if self.struct_log is None:
            return 0
        return self.struct_log.execution_patterns.memory_spikes

    @property
    def gas_per_call(self) -> float:
        if self.call_trace is None:
            return 0.0
        return safe_ratio(self.call_trace.total_gas, self.call_trace.total_calls)

    @property
    def has_trace(self) -> bool:
        return self.struct_log is not None or self.call_trace is not None

    @property
    def deep_steps(self) -> int:
        if self.struct_log is None:
            return 0
        return self.struct_log.execution_patterns.deep_steps

    @property
    def function_calls(self) -> list[FunctionCallStat]:
        if self.call_trace is None:
            return []
        return self.call_trace.function_calls

    @property
    def top_contract_share(self) -> float:
        if self.call_trace is None or not self.call_trace.contract_entries:
            return 0.0
        return self.call_trace.contract_entries[0].percentage_of_total

    @property
    def top_contract_gas(self) -> int:
        if self.call_trace is None or not self.call_trace.contract_entries:
            return 0
        return self.call_trace.contract_entries[0].gas_used

    @property
    def failure_rate(self) -> float:
        if self.call_trace is None:
            return 0.0
        return self.call_trace.interaction_summary.failure_rate

    @property
    def failed_gas(self) -> int:
        if self.call_trace is None:
            return 0
        return self.call_trace.failed_gas

    @property
    def complexity_score(self) -> float:
        if self.call_trace is None:
            return 0.0
        return self.call_trace.interaction_summary.complexity_score


Predicate = Callable[[PatternContext], bool]
GasEstimator = Callable[[PatternContext], float]
EvidenceBuilder = Callable[[PatternContext], dict[str, Any]]


def _no_evidence(ctx: PatternContext) -> dict[str, Any]:
    return {}


@dataclass(frozen=True)
class OptimizationPattern:
    """Immutable definition of one gas optimization heuristic.

    A pattern fires when the unified total reaches ``gas_threshold``, at least
    one of ``required_opcodes`` was executed (when any are listed) and
    ``predicate`` holds. A ``fallback`` pattern is only considered when no
    regular pattern fired.
    """

    id: str
    name: str
    description: str
    category: PatternCategory
    severity: FindingSeverity
    static_savings: int
    predicate: Predicate
    observed_gas: GasEstimator
    gas_threshold: int = 0
    required_opcodes: tuple[str, ...] = ()
    conditions: tuple[str, ...] = ()
    evidence: EvidenceBuilder = _no_evidence
    recommendations: tuple[Recommendation, ...] = ()
    resources: tuple[Resource, ...] = ()
    fallback: bool = False

    def applies(self, ctx: PatternContext) -> bool:
        if self.gas_threshold and ctx.total_gas < self.gas_threshold:
            return False
        if self.required_opcodes and not ctx.has_any_opcode(self.required_opcodes):
            return False
        return bool(self.predicate(ctx))

    def collect_evidence(self, ctx: PatternContext) -> dict[str, Any]:
        details = {
            "totalGasUsed": ctx.total_gas,
            "gasThreshold": self.gas_threshold,
            "conditions": list(self.conditions),
            "fallback": self.fallback,
        }
        if self.required_opcodes:
            details["requiredOpcodes"] = list(self.required_opcodes)
        details.update(self.evidence(ctx))
        return details

    def describe(self) -> dict[str, Any]:
        """Static, JSON-safe description for listings."""
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category.value,
            "severity": self.severity.value,
            "gasThreshold": self.gas_threshold,
            "requiredOpcodes": list(self.required_opcodes),
            "staticSavings": self.static_savings,
            "conditions": list(self.conditions),
        }
