"""Unified gas model builder.

Merges whichever aggregates are available into one categorized view. The
presence of each trace form is encoded in the ``TraceInput`` variant rather
than in nullable fields, so every consumer dispatches on one closed set.
"""

from __future__ import annotations

from dataclasses import dataclass

from tracegas.analyzer.call_trace import CallTraceAggregate
from tracegas.analyzer.struct_log import StructLogAggregate
from tracegas.core.ratios import percentages
from tracegas.core.types import (
    BreakdownKind,
    GasBreakdownEntry,
    TraceSource,
    UnifiedGasModel,
)


# ── Trace Input ──────────────────────────────────────────────────────────────


class TraceInput:
    """Tagged union over the aggregates available for one transaction."""

    source: TraceSource = TraceSource.NEITHER

    @staticmethod
    def of(
        struct_log: StructLogAggregate | None,
        call_trace: CallTraceAggregate | None,
    ) -> "TraceInput":
        if struct_log is not None and call_trace is not None:
            return BothTraces(struct_log=struct_log, call_trace=call_trace)
        if struct_log is not None:
            return StructLogOnly(struct_log=struct_log)
        if call_trace is not None:
            return CallTraceOnly(call_trace=call_trace)
        return NoTraces()

    def aggregates(
        self,
    ) -> tuple[StructLogAggregate | None, CallTraceAggregate | None]:
        """Return ``(struct_log, call_trace)``, either of which may be None."""
        if isinstance(self, BothTraces):
            return self.struct_log, self.call_trace
        if isinstance(self, StructLogOnly):
            return self.struct_log, None
        if isinstance(self, CallTraceOnly):
            return None, self.call_trace
        return None, None


@dataclass(frozen=True)
class StructLogOnly(TraceInput):
    struct_log: StructLogAggregate
    source = TraceSource.STRUCT_LOG_ONLY


@dataclass(frozen=True)
class CallTraceOnly(TraceInput):
    call_trace: CallTraceAggregate
    source = TraceSource.CALL_TRACE_ONLY


@dataclass(frozen=True)
class BothTraces(TraceInput):
    struct_log: StructLogAggregate
    call_trace: CallTraceAggregate
    source = TraceSource.BOTH


@dataclass(frozen=True)
class NoTraces(TraceInput):
    source = TraceSource.NEITHER


# ── Builder ──────────────────────────────────────────────────────────────────


class UnifiedModelBuilder:
    """Builds the ``UnifiedGasModel`` from a ``TraceInput``."""

    def build(self, trace_input: TraceInput) -> UnifiedGasModel:
        if isinstance(trace_input, NoTraces):
            return UnifiedGasModel(source=TraceSource.NEITHER)

        struct_log, call_trace = trace_input.aggregates()

        if call_trace is not None:
            total = call_trace.total_gas
        else:
            total = struct_log.total_gas if struct_log is not None else 0

        breakdown: list[GasBreakdownEntry] = []
        if struct_log is not None:
            gas = [c.gas_used for c in struct_log.category_totals]
            for entry, pct in zip(struct_log.category_totals, percentages(gas, total)):
                breakdown.append(GasBreakdownEntry(
                    kind=BreakdownKind.CATEGORY,
                    key=entry.category.value,
                    label=entry.category.value,
                    gas_used=entry.gas_used,
                    percentage_of_total=pct,
                ))
        if call_trace is not None:
            gas = [c.gas_used for c in call_trace.contract_entries]
            for entry, pct in zip(call_trace.contract_entries, percentages(gas, total)):
                breakdown.append(GasBreakdownEntry(
                    kind=BreakdownKind.CONTRACT,
                    key=entry.address,
                    label=entry.label,
                    gas_used=entry.gas_used,
                    percentage_of_total=pct,
                ))
        breakdown.sort(key=lambda e: e.gas_used, reverse=True)

        return UnifiedGasModel(
            source=trace_input.source,
            total_gas_used=total,
            category_totals=list(struct_log.category_totals) if struct_log else [],
            contract_entries=list(call_trace.contract_entries) if call_trace else [],
            breakdown=breakdown,
            opcode_stats=list(struct_log.opcode_stats) if struct_log else [],
        )
