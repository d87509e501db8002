"""Analysis orchestrator — coordinates the trace analysis pipeline."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Any

from tracegas.analyzer.base_pattern import OptimizationPattern, PatternContext
from tracegas.analyzer.call_trace import CallTraceAggregate, CallTraceAggregator
from tracegas.analyzer.cost import CostEstimator
from tracegas.analyzer.detector import PatternDetector
from tracegas.analyzer.efficiency import EfficiencyScorer
from tracegas.analyzer.patterns import DEFAULT_PATTERNS
from tracegas.analyzer.struct_log import StructLogAggregate, StructLogAggregator
from tracegas.analyzer.unified import TraceInput, UnifiedModelBuilder
from tracegas.analyzer.validation import TraceValidator
from tracegas.core.config import Settings, get_settings
from tracegas.core.errors import AnalysisFailure
from tracegas.core.types import (
    CallTrace,
    PricingConfig,
    StructLogTrace,
    UnifiedAnalysisResult,
)

logger = logging.getLogger(__name__)


class AnalysisOrchestrator:
    """Coordinates the trace analysis pipeline.

    Flow:
    1. VALIDATING — exhaustive validation of every input
    2. AGGREGATING — struct-log and call-trace aggregation (independent)
    3. UNIFYING — merge aggregates into the unified gas model
    4. SCORING — efficiency metrics, cost estimates, optimization findings

    Stateless per call; the same instance may serve concurrent requests.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        patterns: tuple[OptimizationPattern, ...] = DEFAULT_PATTERNS,
    ) -> None:
        self._settings = settings or get_settings()
        self._patterns = tuple(patterns)
        self._validator = TraceValidator(self._settings)
        self._struct_log_aggregator = StructLogAggregator()
        self._call_trace_aggregator = CallTraceAggregator()
        self._builder = UnifiedModelBuilder()
        self._scorer = EfficiencyScorer()

    # ── Public API ───────────────────────────────────────────────────────

    def analyze(
        self,
        struct_log: StructLogTrace | dict[str, Any] | None = None,
        call_trace: CallTrace | dict[str, Any] | None = None,
        pricing: PricingConfig | dict[str, Any] | None = None,
    ) -> UnifiedAnalysisResult | AnalysisFailure:
        """Run the full pipeline synchronously."""
        started = time.monotonic()
        validated = self._validate(struct_log, call_trace, pricing)
        if isinstance(validated, AnalysisFailure):
            return validated
        log_trace, call, price, warnings = validated

        log_agg, call_agg = self._aggregate_both(log_trace, call)
        return self._finish(log_agg, call_agg, price, warnings, started)

    async def analyze_async(
        self,
        struct_log: StructLogTrace | dict[str, Any] | None = None,
        call_trace: CallTrace | dict[str, Any] | None = None,
        pricing: PricingConfig | dict[str, Any] | None = None,
    ) -> UnifiedAnalysisResult | AnalysisFailure:
        """Run the pipeline off the event loop.

        Validation and the finishing stage each run on a worker thread; the
        two aggregators run on separate threads of their own.
        """
        started = time.monotonic()
        validated = await asyncio.to_thread(
            self._validate, struct_log, call_trace, pricing
        )
        if isinstance(validated, AnalysisFailure):
            return validated
        log_trace, call, price, warnings = validated

        if self._settings.concurrent_aggregation:
            log_agg, call_agg = await asyncio.gather(
                asyncio.to_thread(self._aggregate_struct_log, log_trace),
                asyncio.to_thread(self._aggregate_call_trace, call),
            )
        else:
            log_agg, call_agg = await asyncio.to_thread(
                self._aggregate_both, log_trace, call
            )
        return await asyncio.to_thread(
            self._finish, log_agg, call_agg, price, warnings, started
        )

    # ── Stages ───────────────────────────────────────────────────────────

    def _validate(
        self, struct_log: Any, call_trace: Any, pricing: Any
    ) -> tuple[StructLogTrace | None, CallTrace | None, PricingConfig, list[str]] | AnalysisFailure:
        log_trace, log_report = self._validator.validate_struct_log(struct_log)
        call, call_report = self._validator.validate_call_trace(call_trace)
        price, price_report = self._validator.validate_pricing(pricing)

        report = log_report.merge(call_report).merge(price_report)
        if not report.is_valid or price is None:
            failure = AnalysisFailure.from_report(report)
            logger.info(
                "Analysis rejected: %d validation issue(s)",
                len(report.issues),
                extra={"findings": 0},
            )
            return failure
        return log_trace, call, price, list(report.warnings)

    def _aggregate_struct_log(
        self, trace: StructLogTrace | None
    ) -> StructLogAggregate | None:
        if trace is None or not trace.steps:
            return None
        return self._struct_log_aggregator.aggregate(trace.steps)

    def _aggregate_call_trace(
        self, trace: CallTrace | None
    ) -> CallTraceAggregate | None:
        if trace is None or not trace.call_data:
            return None
        return self._call_trace_aggregator.aggregate(trace)

    def _aggregate_both(
        self, log_trace: StructLogTrace | None, call: CallTrace | None
    ) -> tuple[StructLogAggregate | None, CallTraceAggregate | None]:
        return self._aggregate_struct_log(log_trace), self._aggregate_call_trace(call)

    def _finish(
        self,
        log_agg: StructLogAggregate | None,
        call_agg: CallTraceAggregate | None,
        pricing: PricingConfig,
        warnings: list[str],
        started: float,
    ) -> UnifiedAnalysisResult:
        analysis_id = str(uuid.uuid4())
        trace_input = TraceInput.of(log_agg, call_agg)
        model = self._builder.build(trace_input)

        estimator = CostEstimator(pricing, top_n=self._settings.cost_top_n)
        detector = PatternDetector(self._patterns, pricing)
        findings = detector.detect(PatternContext.build(trace_input, model))

        if call_agg is not None:
            warnings = [*warnings, *call_agg.warnings]

        result = UnifiedAnalysisResult(
            source=model.source,
            total_gas_used=model.total_gas_used,
            gas_breakdown=model.breakdown,
            category_totals=model.category_totals,
            contract_attribution=model.contract_entries,
            efficiency_metrics=self._scorer.score(trace_input),
            cost_analysis=estimator.estimate(model),
            optimization_findings=findings,
            warnings=warnings,
        )
        if log_agg is not None:
            result.execution_timeline = log_agg.execution_timeline
            result.memory_usage = log_agg.memory_usage
            result.heatmap = log_agg.gas_heatmap
            result.performance_metrics = log_agg.performance
            result.execution_patterns = log_agg.execution_patterns
        if call_agg is not None:
            result.call_hierarchy = call_agg.call_hierarchy
            result.value_transfers = call_agg.value_transfers
            result.success_rates = call_agg.success_rates
            result.interaction_summary = call_agg.interaction_summary
            result.network = call_agg.network

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.info(
            "Analysis complete: %d gas, %d finding(s) in %dms",
            model.total_gas_used, len(findings), duration_ms,
            extra={
                "analysis_id": analysis_id,
                "duration_ms": duration_ms,
                "steps": log_agg.total_steps if log_agg else 0,
                "calls": call_agg.total_calls if call_agg else 0,
                "findings": len(findings),
            },
        )
        return result
