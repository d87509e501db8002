"""Optimization pattern detector.

Runs an injected, immutable pattern table against the aggregates of one
transaction and emits findings with estimated savings. Ordering is fully
deterministic: savings desc, severity desc, then table order. Fallback
patterns are evaluated only when nothing else fired.
"""

from __future__ import annotations

import logging

from tracegas.analyzer.base_pattern import OptimizationPattern, PatternContext
from tracegas.analyzer.cost import CostEstimator
from tracegas.analyzer.patterns import DEFAULT_PATTERNS
from tracegas.core.ratios import clamp, safe_ratio
from tracegas.core.types import OptimizationFinding, PotentialSavings, PricingConfig

logger = logging.getLogger(__name__)

# Fraction of the observed gas a fix is expected to recover.
SAVINGS_CAPTURE_FACTOR = 0.8


class PatternDetector:
    """Evaluates optimization patterns against a ``PatternContext``."""

    def __init__(
        self,
        patterns: tuple[OptimizationPattern, ...] = DEFAULT_PATTERNS,
        pricing: PricingConfig | None = None,
    ):
        self.patterns = tuple(patterns)
        self.cost = CostEstimator(pricing or PricingConfig())

    def estimate_savings(
        self, pattern: OptimizationPattern, ctx: PatternContext
    ) -> PotentialSavings:
        observed = max(0.0, float(pattern.observed_gas(ctx)))
        gas = int(round(min(pattern.static_savings, observed * SAVINGS_CAPTURE_FACTOR)))
        _, native, usd = self.cost.estimate_gas(gas)
        return PotentialSavings(
            gas_amount=gas,
            percentage=clamp(safe_ratio(gas, ctx.total_gas) * 100),
            cost_native=native,
            cost_usd=usd,
        )

    def _finding(
        self, pattern: OptimizationPattern, ctx: PatternContext
    ) -> OptimizationFinding:
        finding = OptimizationFinding(
            pattern_id=pattern.id,
            name=pattern.name,
            description=pattern.description,
            category=pattern.category,
            severity=pattern.severity,
            potential_savings=self.estimate_savings(pattern, ctx),
            evidence=pattern.collect_evidence(ctx),
            recommendations=[r.model_copy() for r in pattern.recommendations],
            resources=[r.model_copy() for r in pattern.resources],
        )
        logger.debug(
            "Pattern %s fired: %d gas savings",
            pattern.id, finding.potential_savings.gas_amount,
        )
        return finding

    def detect(self, ctx: PatternContext) -> list[OptimizationFinding]:
        ranked: list[tuple[int, OptimizationFinding]] = [
            (order, self._finding(pattern, ctx))
            for order, pattern in enumerate(self.patterns)
            if not pattern.fallback and pattern.applies(ctx)
        ]
        if not ranked:
            ranked = [
                (order, self._finding(pattern, ctx))
                for order, pattern in enumerate(self.patterns)
                if pattern.fallback and pattern.applies(ctx)
            ]

        ranked.sort(key=lambda item: (
            -item[1].potential_savings.gas_amount,
            -item[1].severity.rank,
            item[0],
        ))
        return [finding for _, finding in ranked]
