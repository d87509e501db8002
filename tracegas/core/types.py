"""Shared enums and types used across the engine.

Input models mirror the JSON emitted by the upstream tracer (camelCase keys)
and are frozen: the engine borrows them read-only. Output models serialize
to camelCase with ``model_dump(by_alias=True)`` for the presentation layer.
"""

from __future__ import annotations

import enum
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both camelCase keys and snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FrozenCamelModel(CamelModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


# ── Enums ────────────────────────────────────────────────────────────────────


class Category(str, enum.Enum):
    """Semantic opcode category."""

    COMPUTATION = "Computation"
    STORAGE = "Storage"
    MEMORY = "Memory"
    CONTROL_FLOW = "Control Flow"
    SYSTEM = "System"
    CRYPTO = "Crypto"
    OTHER = "Other"


class FindingSeverity(str, enum.Enum):
    """Optimization finding severity (ordinal)."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    FindingSeverity.LOW: 1,
    FindingSeverity.MEDIUM: 2,
    FindingSeverity.HIGH: 3,
    FindingSeverity.CRITICAL: 4,
}


class PatternCategory(str, enum.Enum):
    """Area of the contract an optimization pattern targets."""

    STORAGE = "storage"
    COMPUTATION = "computation"
    MEMORY = "memory"
    LOOPS = "loops"
    FUNCTIONS = "functions"
    DATA_STRUCTURES = "data-structures"
    INTERACTIONS = "interactions"
    GENERAL = "general"


class Difficulty(str, enum.Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class ResourceKind(str, enum.Enum):
    DOCUMENTATION = "documentation"
    TOOL = "tool"
    GUIDE = "guide"
    EXAMPLE = "example"


class BreakdownKind(str, enum.Enum):
    """Key namespace of a unified breakdown row."""

    CATEGORY = "category"
    CONTRACT = "contract"


class TraceSource(str, enum.Enum):
    """Which trace forms contributed to an analysis."""

    STRUCT_LOG_ONLY = "struct_log_only"
    CALL_TRACE_ONLY = "call_trace_only"
    BOTH = "both"
    NEITHER = "neither"


# ── Trace Inputs ─────────────────────────────────────────────────────────────

NonNegativeInt = Annotated[int, Field(ge=0)]


class TraceStep(FrozenCamelModel):
    """One opcode execution from a struct log."""

    step: NonNegativeInt
    opcode: str = Field(
        min_length=1, validation_alias=AliasChoices("opcode", "op")
    )
    gas_cost: NonNegativeInt
    depth: NonNegativeInt = 0
    stack_depth: NonNegativeInt = 0
    memory_size_bytes: NonNegativeInt = 0
    pc: NonNegativeInt | None = None


class TopOpcode(FrozenCamelModel):
    opcode: str
    gas_used: NonNegativeInt = 0
    count: NonNegativeInt = 0


class StructLogSummary(FrozenCamelModel):
    total_steps: NonNegativeInt = 0
    total_gas_cost: NonNegativeInt = 0
    max_stack_depth: NonNegativeInt = 0


class StructLogTrace(FrozenCamelModel):
    """Flat, ordered step log with its upstream summary."""

    steps: tuple[TraceStep, ...] = ()
    summary: StructLogSummary | None = None
    top_opcodes: tuple[TopOpcode, ...] = ()


class CallRecord(FrozenCamelModel):
    """One call frame from a hierarchical call trace."""

    id: str = Field(min_length=1)
    parent_id: str | None = None
    trace_address: tuple[NonNegativeInt, ...] = ()
    from_address: str = Field(alias="from", min_length=1)
    to_address: str = Field(alias="to", min_length=1)
    call_type: str = Field(default="CALL", alias="type")
    gas_used: NonNegativeInt = 0
    value_transferred: float = Field(default=0.0, ge=0)
    success: bool = True
    error: str | None = None
    contract_label: str | None = None
    input_preview: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _default_success(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("success") is None:
            data = {**data, "success": not data.get("error")}
        return data

    @property
    def depth(self) -> int:
        return len(self.trace_address)


class TransactionStats(FrozenCamelModel):
    total_calls: NonNegativeInt = 0
    total_gas: NonNegativeInt = 0
    errors: NonNegativeInt = 0


class CallTrace(FrozenCamelModel):
    """Hierarchical call trace with transaction-level statistics."""

    call_data: tuple[CallRecord, ...] = ()
    transaction_stats: TransactionStats | None = None

    def stats(self) -> TransactionStats:
        """Upstream stats, or stats derived from the records when absent."""
        if self.transaction_stats is not None:
            return self.transaction_stats
        roots = [c for c in self.call_data if not c.trace_address]
        return TransactionStats(
            total_calls=len(self.call_data),
            total_gas=sum(c.gas_used for c in roots) if roots else 0,
            errors=sum(1 for c in self.call_data if not c.success),
        )


class PricingConfig(FrozenCamelModel):
    """Gas price and native-currency price used for cost estimates."""

    gas_price_gwei: float = Field(default=20.0, ge=0)
    native_usd_price: float = Field(default=2500.0, ge=0)

    @classmethod
    def from_settings(cls, settings: Any = None) -> "PricingConfig":
        if settings is None:
            from tracegas.core.config import get_settings

            settings = get_settings()
        return cls(
            gas_price_gwei=settings.gas_price_gwei,
            native_usd_price=settings.native_usd_price,
        )


# ── Aggregates ───────────────────────────────────────────────────────────────


class CategoryTotal(CamelModel):
    category: Category
    gas_used: int = 0
    count: int = 0
    percentage_of_total: float = 0.0
    color: str = ""


class OpcodeStat(CamelModel):
    opcode: str
    category: Category = Category.OTHER
    count: int = 0
    gas_used: int = 0
    percentage_of_total: float = 0.0
    rank: int = 0


class ContractGasEntry(CamelModel):
    address: str
    label: str = ""
    gas_used: int = 0
    call_count: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    percentage_of_total: float = 0.0
    success_rate: float = 0.0
    color: str = ""


class GasBreakdownEntry(CamelModel):
    kind: BreakdownKind
    key: str
    label: str = ""
    gas_used: int = 0
    percentage_of_total: float = 0.0


class TimelinePoint(CamelModel):
    step: int
    opcode: str
    depth: int = 0
    gas_used: int = 0
    cumulative_gas: int = 0


class MemoryPoint(CamelModel):
    step: int
    stack_depth: int = 0
    memory_size_bytes: int = 0
    gas_used: int = 0


class HeatmapPoint(CamelModel):
    step: int
    opcode: str
    gas_used: int = 0
    intensity: float = 0.0


class PerformanceMetrics(CamelModel):
    total_steps: int = 0
    total_gas: int = 0
    avg_gas_per_step: float = 0.0
    most_expensive_opcode: str | None = None
    most_expensive_opcode_gas: int = 0
    max_stack_depth: int = 0
    avg_stack_depth: float = 0.0
    stack_utilization: float = 0.0
    max_memory_bytes: int = 0
    avg_memory_bytes: float = 0.0
    memory_utilization: float = 0.0
    efficiency_score: float = 100.0


class ExecutionPatterns(CamelModel):
    gas_spikes: int = 0
    memory_spikes: int = 0
    deep_steps: int = 0
    execution_complexity: int = 0


class CallHierarchyNode(CamelModel):
    id: str
    parent_id: str | None = None
    trace_address: list[int] = Field(default_factory=list)
    address: str
    label: str = ""
    function_name: str = ""
    call_type: str = "CALL"
    gas_used: int = 0
    value: float = 0.0
    success: bool = True
    depth: int = 0
    orphaned: bool = False
    child_ids: list[str] = Field(default_factory=list)


class CallHierarchy(CamelModel):
    """Call forest kept flat so arbitrarily deep chains serialize.

    ``nodes`` are in trace order; edges are the ``childIds`` of each node.
    """

    nodes: list[CallHierarchyNode] = Field(default_factory=list)
    root_ids: list[str] = Field(default_factory=list)

    def by_id(self) -> dict[str, CallHierarchyNode]:
        return {n.id: n for n in self.nodes}

    def roots(self) -> list[CallHierarchyNode]:
        lookup = self.by_id()
        return [lookup[i] for i in self.root_ids]

    def children(self, node: CallHierarchyNode) -> list[CallHierarchyNode]:
        lookup = self.by_id()
        return [lookup[i] for i in node.child_ids]

    def walk(self):
        """Depth-first, pre-order, without recursion."""
        lookup = self.by_id()
        stack = list(reversed(self.root_ids))
        while stack:
            node = lookup[stack.pop()]
            yield node
            stack.extend(reversed(node.child_ids))


class ValueTransfer(CamelModel):
    call_id: str
    from_address: str = Field(alias="from")
    to_address: str = Field(alias="to")
    value: float = 0.0
    gas_used: int = 0
    success: bool = True


class SuccessRateEntry(CamelModel):
    address: str
    label: str = ""
    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    success_rate: float = 0.0


class InteractionSummary(CamelModel):
    unique_contracts: int = 0
    most_called_contract: str | None = None
    most_called_count: int = 0
    average_call_depth: float = 0.0
    failed_call_count: int = 0
    failure_rate: float = 0.0
    total_value_transferred: float = 0.0
    complexity_score: float = 0.0


class FunctionCallStat(CamelModel):
    signature: str
    gas_used: int = 0
    count: int = 0


class NetworkNode(CamelModel):
    id: str
    label: str = ""
    kind: str = "contract"
    gas_used: int = 0
    call_count: int = 0
    value: float = 0.0


class NetworkEdge(CamelModel):
    id: str
    source: str
    target: str
    gas_used: int = 0
    value: float = 0.0
    call_type: str = "CALL"
    success: bool = True


class InteractionNetwork(CamelModel):
    nodes: list[NetworkNode] = Field(default_factory=list)
    edges: list[NetworkEdge] = Field(default_factory=list)


# ── Consumers ────────────────────────────────────────────────────────────────


class Metric(CamelModel):
    name: str
    value: float = 0.0
    unit: str = ""
    benchmark: float = 0.0
    score: float = 100.0
    recommendation: str = ""


class CostEntry(CamelModel):
    label: str
    address: str | None = None
    gas_used: int = 0
    cost_wei: int = 0
    cost_native: float = 0.0
    cost_usd: float = 0.0
    percentage_of_total: float = 0.0


class PotentialSavings(CamelModel):
    gas_amount: int = 0
    percentage: float = 0.0
    cost_native: float = 0.0
    cost_usd: float = 0.0


class Recommendation(CamelModel):
    title: str
    description: str
    difficulty: Difficulty = Difficulty.MEDIUM
    estimated_effort: str = ""
    code_example: str | None = None


class Resource(CamelModel):
    title: str
    url: str
    kind: ResourceKind = ResourceKind.GUIDE


class OptimizationFinding(CamelModel):
    pattern_id: str
    name: str
    description: str = ""
    category: PatternCategory
    severity: FindingSeverity
    potential_savings: PotentialSavings = Field(default_factory=PotentialSavings)
    evidence: dict[str, Any] = Field(default_factory=dict)
    recommendations: list[Recommendation] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)


class UnifiedGasModel(CamelModel):
    """Merged categorized view of gas use across both trace forms."""

    source: TraceSource = TraceSource.NEITHER
    total_gas_used: int = 0
    category_totals: list[CategoryTotal] = Field(default_factory=list)
    contract_entries: list[ContractGasEntry] = Field(default_factory=list)
    breakdown: list[GasBreakdownEntry] = Field(default_factory=list)
    opcode_stats: list[OpcodeStat] = Field(default_factory=list)


class UnifiedAnalysisResult(CamelModel):
    """Everything the presentation layer consumes for one transaction."""

    source: TraceSource = TraceSource.NEITHER
    total_gas_used: int = 0
    gas_breakdown: list[GasBreakdownEntry] = Field(default_factory=list)
    category_totals: list[CategoryTotal] = Field(default_factory=list)
    contract_attribution: list[ContractGasEntry] = Field(default_factory=list)
    efficiency_metrics: list[Metric] = Field(default_factory=list)
    cost_analysis: list[CostEntry] = Field(default_factory=list)
    optimization_findings: list[OptimizationFinding] = Field(default_factory=list)
    call_hierarchy: CallHierarchy = Field(default_factory=CallHierarchy)
    execution_timeline: list[TimelinePoint] = Field(default_factory=list)
    memory_usage: list[MemoryPoint] = Field(default_factory=list)
    heatmap: list[HeatmapPoint] = Field(default_factory=list)
    performance_metrics: PerformanceMetrics | None = None
    execution_patterns: ExecutionPatterns | None = None
    value_transfers: list[ValueTransfer] = Field(default_factory=list)
    success_rates: list[SuccessRateEntry] = Field(default_factory=list)
    interaction_summary: InteractionSummary | None = None
    network: InteractionNetwork = Field(default_factory=InteractionNetwork)
    warnings: list[str] = Field(default_factory=list)
