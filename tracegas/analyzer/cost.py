"""Cost estimator: converts gas figures to wei, native currency and USD."""

from __future__ import annotations

from tracegas.core.ratios import percentages
from tracegas.core.types import CostEntry, PricingConfig, UnifiedGasModel

WEI_PER_GWEI = 10**9
WEI_PER_NATIVE = 10**18


class CostEstimator:
    """Prices the largest gas consumers of a unified model."""

    def __init__(self, pricing: PricingConfig, top_n: int = 5):
        self.pricing = pricing
        self.top_n = top_n

    def gas_to_wei(self, gas: int) -> int:
        return int(round(gas * self.pricing.gas_price_gwei * WEI_PER_GWEI))

    def estimate_gas(self, gas: int) -> tuple[int, float, float]:
        """Return ``(cost_wei, cost_native, cost_usd)`` for a gas amount."""
        wei = self.gas_to_wei(gas)
        native = wei / WEI_PER_NATIVE
        return wei, native, native * self.pricing.native_usd_price

    def estimate(self, model: UnifiedGasModel) -> list[CostEntry]:
        """Cost entries for the top-N contracts, else the top-N categories."""
        if model.contract_entries:
            rows = [
                (c.label or c.address, c.address, c.gas_used)
                for c in model.contract_entries[: self.top_n]
            ]
        else:
            rows = [
                (c.category.value, None, c.gas_used)
                for c in model.category_totals[: self.top_n]
            ]

        pcts = percentages([gas for _, _, gas in rows], model.total_gas_used)
        entries = []
        for (label, address, gas), pct in zip(rows, pcts):
            wei, native, usd = self.estimate_gas(gas)
            entries.append(CostEntry(
                label=label,
                address=address,
                gas_used=gas,
                cost_wei=wei,
                cost_native=native,
                cost_usd=usd,
                percentage_of_total=pct,
            ))
        entries.sort(key=lambda e: e.cost_usd, reverse=True)
        return entries
