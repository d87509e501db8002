"""Struct-log aggregator.

Turns an ordered sequence of ``TraceStep`` records into category totals,
per-opcode statistics, an execution timeline, memory usage, a gas heatmap,
performance metrics and execution-pattern counts. A single left-to-right
pass feeds every running sum; the input is never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tracegas.analyzer.categorizer import categorize, category_color
from tracegas.core.ratios import clamp, percentages, safe_ratio
from tracegas.core.types import (
    Category,
    CategoryTotal,
    ExecutionPatterns,
    HeatmapPoint,
    MemoryPoint,
    OpcodeStat,
    PerformanceMetrics,
    TimelinePoint,
    TraceStep,
)

logger = logging.getLogger(__name__)


# ── Constants ────────────────────────────────────────────────────────────────

# Average gas per step at which the step-efficiency score reaches zero.
EFFICIENCY_GAS_CEILING = 1000
GAS_SPIKE_FACTOR = 3.0
MEMORY_SPIKE_FACTOR = 2.0
DEEP_STEP_DEPTH = 3


@dataclass
class StructLogAggregate:
    """Everything derived from one struct log."""

    category_totals: list[CategoryTotal] = field(default_factory=list)
    opcode_stats: list[OpcodeStat] = field(default_factory=list)
    execution_timeline: list[TimelinePoint] = field(default_factory=list)
    memory_usage: list[MemoryPoint] = field(default_factory=list)
    gas_heatmap: list[HeatmapPoint] = field(default_factory=list)
    performance: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    execution_patterns: ExecutionPatterns = field(default_factory=ExecutionPatterns)
    total_gas: int = 0

    @property
    def total_steps(self) -> int:
        return self.performance.total_steps

    def opcode_count(self, *opcodes: str) -> int:
        wanted = {op.upper() for op in opcodes}
        return sum(s.count for s in self.opcode_stats if s.opcode in wanted)

    def opcode_gas(self, *opcodes: str) -> int:
        wanted = {op.upper() for op in opcodes}
        return sum(s.gas_used for s in self.opcode_stats if s.opcode in wanted)

    def has_opcode(self, opcode: str) -> bool:
        return self.opcode_count(opcode) > 0


class StructLogAggregator:
    """Aggregates a flat step log into categorized gas statistics."""

    def aggregate(self, steps: Sequence[TraceStep]) -> StructLogAggregate:
        if not steps:
            return StructLogAggregate()

        category_gas: dict[Category, int] = {}
        category_count: dict[Category, int] = {}
        opcode_gas: dict[str, int] = {}
        opcode_count: dict[str, int] = {}

        timeline: list[TimelinePoint] = []
        memory: list[MemoryPoint] = []
        cumulative = 0
        max_cost = 0
        max_stack = 0
        max_memory = 0
        stack_sum = 0
        memory_sum = 0

        for step in steps:
            mnemonic = step.opcode.strip().upper()
            category = categorize(mnemonic)
            category_gas[category] = category_gas.get(category, 0) + step.gas_cost
            category_count[category] = category_count.get(category, 0) + 1
            opcode_gas[mnemonic] = opcode_gas.get(mnemonic, 0) + step.gas_cost
            opcode_count[mnemonic] = opcode_count.get(mnemonic, 0) + 1

            cumulative += step.gas_cost
            timeline.append(TimelinePoint(
                step=step.step,
                opcode=step.opcode,
                depth=step.depth,
                gas_used=step.gas_cost,
                cumulative_gas=cumulative,
            ))
            memory.append(MemoryPoint(
                step=step.step,
                stack_depth=step.stack_depth,
                memory_size_bytes=step.memory_size_bytes,
                gas_used=step.gas_cost,
            ))

            max_cost = max(max_cost, step.gas_cost)
            max_stack = max(max_stack, step.stack_depth)
            max_memory = max(max_memory, step.memory_size_bytes)
            stack_sum += step.stack_depth
            memory_sum += step.memory_size_bytes

        total_gas = cumulative
        n = len(steps)

        heatmap = [
            HeatmapPoint(
                step=step.step,
                opcode=step.opcode,
                gas_used=step.gas_cost,
                intensity=safe_ratio(step.gas_cost, max_cost),
            )
            for step in steps
        ]

        # Stable sort keeps first-appearance order for ties.
        ranked_categories = sorted(
            category_gas.items(), key=lambda kv: kv[1], reverse=True
        )
        category_pcts = percentages([g for _, g in ranked_categories], total_gas)
        category_totals = [
            CategoryTotal(
                category=category,
                gas_used=gas,
                count=category_count[category],
                percentage_of_total=pct,
                color=category_color(category),
            )
            for (category, gas), pct in zip(ranked_categories, category_pcts)
        ]

        ranked_opcodes = sorted(
            opcode_gas.items(), key=lambda kv: kv[1], reverse=True
        )
        opcode_pcts = percentages([g for _, g in ranked_opcodes], total_gas)
        opcode_stats = [
            OpcodeStat(
                opcode=opcode,
                category=categorize(opcode),
                count=opcode_count[opcode],
                gas_used=gas,
                percentage_of_total=pct,
                rank=i + 1,
            )
            for i, ((opcode, gas), pct) in enumerate(zip(ranked_opcodes, opcode_pcts))
        ]

        avg_gas = safe_ratio(total_gas, n)
        avg_stack = safe_ratio(stack_sum, n)
        avg_memory = safe_ratio(memory_sum, n)
        top = opcode_stats[0]

        performance = PerformanceMetrics(
            total_steps=n,
            total_gas=total_gas,
            avg_gas_per_step=avg_gas,
            most_expensive_opcode=top.opcode,
            most_expensive_opcode_gas=top.gas_used,
            max_stack_depth=max_stack,
            avg_stack_depth=avg_stack,
            stack_utilization=safe_ratio(avg_stack, max_stack) * 100,
            max_memory_bytes=max_memory,
            avg_memory_bytes=avg_memory,
            memory_utilization=safe_ratio(avg_memory, max_memory) * 100,
            efficiency_score=clamp(100 - (avg_gas / EFFICIENCY_GAS_CEILING) * 100),
        )

        gas_spikes = sum(1 for s in steps if s.gas_cost > avg_gas * GAS_SPIKE_FACTOR)
        memory_spikes = sum(
            1 for s in steps if s.memory_size_bytes > avg_memory * MEMORY_SPIKE_FACTOR
        )
        deep_steps = sum(1 for s in steps if s.depth > DEEP_STEP_DEPTH)
        patterns = ExecutionPatterns(
            gas_spikes=gas_spikes,
            memory_spikes=memory_spikes,
            deep_steps=deep_steps,
            execution_complexity=gas_spikes + memory_spikes + deep_steps,
        )

        logger.debug(
            "Aggregated struct log: %d steps, %d gas, %d opcodes",
            n, total_gas, len(opcode_stats),
        )

        return StructLogAggregate(
            category_totals=category_totals,
            opcode_stats=opcode_stats,
            execution_timeline=timeline,
            memory_usage=memory,
            gas_heatmap=heatmap,
            performance=performance,
            execution_patterns=patterns,
            total_gas=total_gas,
        )
