"""Efficiency scorer.

Scores are benchmark-relative and clamped to [0, 100]. A zero denominator
yields the sentinel score 100 rather than NaN or Infinity.
"""

from __future__ import annotations

import math

from tracegas.analyzer.unified import TraceInput
from tracegas.core.ratios import clamp, safe_ratio
from tracegas.core.types import Metric

GAS_PER_CALL_BENCHMARK = 50_000
GAS_PER_CALL_WARNING = 100_000
SUCCESS_RATE_BENCHMARK = 95.0
SUCCESS_RATE_WARNING = 90.0
GAS_PER_OPCODE_BENCHMARK = 3.0
GAS_PER_OPCODE_WARNING = 5.0
MEMORY_WORD_BYTES = 32
MEMORY_WORD_BUDGET = 1000
MEMORY_EFFICIENCY_BENCHMARK = 80.0
MEMORY_EFFICIENCY_WARNING = 50.0
OVERALL_BENCHMARK = 80.0
SENTINEL_SCORE = 100.0


def _benchmark_score(benchmark: float, actual: float) -> float:
    if actual <= 0:
        return SENTINEL_SCORE
    return clamp(safe_ratio(benchmark, actual, SENTINEL_SCORE / 100) * 100)


class EfficiencyScorer:
    """Derives benchmark-relative efficiency metrics from the aggregates."""

    def score(self, trace_input: TraceInput) -> list[Metric]:
        struct_log, call_trace = trace_input.aggregates()
        metrics: list[Metric] = []

        if call_trace is not None:
            per_call = safe_ratio(call_trace.total_gas, call_trace.total_calls)
            metrics.append(Metric(
                name="Gas per Call",
                value=round(per_call),
                unit="gas",
                benchmark=GAS_PER_CALL_BENCHMARK,
                score=_benchmark_score(GAS_PER_CALL_BENCHMARK, per_call),
                recommendation=(
                    "Consider optimizing contract calls to reduce gas per operation"
                    if per_call > GAS_PER_CALL_WARNING
                    else "Gas per call is within acceptable range"
                ),
            ))

            summary = call_trace.interaction_summary
            if call_trace.total_calls:
                success_rate = 100 - summary.failure_rate
            else:
                success_rate = SENTINEL_SCORE
            metrics.append(Metric(
                name="Call Success Rate",
                value=round(success_rate, 2),
                unit="%",
                benchmark=SUCCESS_RATE_BENCHMARK,
                score=clamp(success_rate),
                recommendation=(
                    "High failure rate detected. Review error handling and input validation"
                    if success_rate < SUCCESS_RATE_WARNING
                    else "Call success rate is healthy"
                ),
            ))

        if struct_log is not None:
            per_opcode = struct_log.performance.avg_gas_per_step
            metrics.append(Metric(
                name="Gas per Opcode",
                value=round(per_opcode, 2),
                unit="gas",
                benchmark=GAS_PER_OPCODE_BENCHMARK,
                score=_benchmark_score(GAS_PER_OPCODE_BENCHMARK, per_opcode),
                recommendation=(
                    "High gas per opcode suggests inefficient operations"
                    if per_opcode > GAS_PER_OPCODE_WARNING
                    else "Opcode efficiency is good"
                ),
            ))

            peak_words = math.ceil(
                struct_log.performance.max_memory_bytes / MEMORY_WORD_BYTES
            )
            memory_score = clamp(
                safe_ratio(MEMORY_WORD_BUDGET, peak_words, SENTINEL_SCORE / 100) * 100
            )
            metrics.append(Metric(
                name="Memory Efficiency",
                value=round(memory_score),
                unit="score",
                benchmark=MEMORY_EFFICIENCY_BENCHMARK,
                score=memory_score,
                recommendation=(
                    "High memory usage detected. Consider optimizing data structures"
                    if memory_score < MEMORY_EFFICIENCY_WARNING
                    else "Memory usage is efficient"
                ),
            ))

        if not metrics:
            return metrics

        overall = sum(m.score for m in metrics) / len(metrics)
        if overall < 60:
            advice = "Multiple optimization opportunities identified"
        elif overall < OVERALL_BENCHMARK:
            advice = "Good efficiency with room for improvement"
        else:
            advice = "Excellent gas efficiency"
        metrics.insert(0, Metric(
            name="Overall Efficiency",
            value=round(overall),
            unit="score",
            benchmark=OVERALL_BENCHMARK,
            score=clamp(overall),
            recommendation=advice,
        ))
        return metrics
