"""Default optimization pattern table.

Each entry pairs a gating threshold with a real predicate over the
aggregates; the table is an immutable tuple injected into
``PatternDetector``. Order matters only as the final tiebreaker.
"""

from __future__ import annotations

from tracegas.analyzer.base_pattern import OptimizationPattern, PatternContext
from tracegas.core.types import (
    Category,
    Difficulty,
    FindingSeverity,
    PatternCategory,
    Recommendation,
    Resource,
    ResourceKind,
)

# Share of total gas assumed addressable by patterns with no opcode anchor.
BROAD_OBSERVED_SHARE = 0.2

SSTORE_COUNT_MIN = 3
SSTORE_GAS_MIN = 15_000
JUMP_COUNT_MIN = 50
DISTINCT_FUNCTIONS_MIN = 3
FUNCTION_GAS_MIN = 3_000
MEMORY_OPS_MIN = 20
SLOAD_COUNT_MIN = 10
COMPUTATION_OPS_MIN = 5
GAS_CONCENTRATION_PCT = 70.0
FAILURE_RATE_PCT = 10.0
COMPLEXITY_SCORE_MIN = 50.0
DEEP_STEPS_MIN = 5
STORAGE_SHARE_PCT = 30.0
MEMORY_SHARE_PCT = 25.0
GAS_PER_STEP_MAX = 1_000
MEMORY_SPIKES_MAX = 10
GAS_PER_CALL_MAX = 50_000

_JUMPS = ("JUMP", "JUMPI")
_MEMORY_OPS = ("MLOAD", "MSTORE")
_COMPUTATION_OPS = ("MUL", "DIV", "MOD", "EXP")


def _broad_share(ctx: PatternContext) -> float:
    return ctx.total_gas * BROAD_OBSERVED_SHARE


def _expensive_functions(ctx: PatternContext) -> int:
    return sum(1 for f in ctx.function_calls if f.gas_used > FUNCTION_GAS_MIN)


STORAGE_PACKING = OptimizationPattern(
    id="storage-packing",
    name="Storage Variable Packing",
    description=(
        "Multiple storage variables can be packed into a single storage slot "
        "to reduce SSTORE operations."
    ),
    category=PatternCategory.STORAGE,
    severity=FindingSeverity.HIGH,
    static_savings=15_000,
    gas_threshold=20_000,
    required_opcodes=("SSTORE",),
    conditions=(
        f"More than {SSTORE_COUNT_MIN} SSTORE operations",
        f"SSTORE gas above {SSTORE_GAS_MIN:,}",
    ),
    predicate=lambda ctx: (
        ctx.opcode_count("SSTORE") > SSTORE_COUNT_MIN
        and ctx.opcode_gas("SSTORE") > SSTORE_GAS_MIN
    ),
    observed_gas=lambda ctx: ctx.opcode_gas("SLOAD", "SSTORE"),
    evidence=lambda ctx: {
        "sstoreCount": ctx.opcode_count("SSTORE"),
        "sstoreGas": ctx.opcode_gas("SSTORE"),
        "storageGas": ctx.opcode_gas("SLOAD", "SSTORE"),
    },
    recommendations=(
        Recommendation(
            title="Pack Variables in Structs",
            description=(
                "Group related variables into structs to utilize storage slot packing."
            ),
            code_example=(
                "struct UserData {\n"
                "    uint128 balance;\n"
                "    uint64 timestamp;\n"
                "    bool active;\n"
                "}"
            ),
            difficulty=Difficulty.EASY,
            estimated_effort="1-2 hours",
        ),
        Recommendation(
            title="Optimize Variable Order",
            description="Arrange variables by size to maximize packing efficiency.",
            difficulty=Difficulty.EASY,
            estimated_effort="30 minutes",
        ),
    ),
    resources=(
        Resource(
            title="Solidity Storage Layout",
            url="https://docs.soliditylang.org/en/latest/internals/layout_in_storage.html",
            kind=ResourceKind.DOCUMENTATION,
        ),
        Resource(
            title="Storage Packing Guide",
            url="https://consensys.net/blog/developers/solidity-gas-optimization-tips/",
            kind=ResourceKind.GUIDE,
        ),
    ),
)

LOOP_OPTIMIZATION = OptimizationPattern(
    id="loop-optimization",
    name="Loop Gas Optimization",
    description=(
        "Inefficient loops consuming excessive gas through repeated operations "
        "or unbounded iterations."
    ),
    category=PatternCategory.LOOPS,
    severity=FindingSeverity.CRITICAL,
    static_savings=50_000,
    gas_threshold=100_000,
    required_opcodes=_JUMPS,
    conditions=(f"More than {JUMP_COUNT_MIN} JUMP/JUMPI operations",),
    predicate=lambda ctx: ctx.opcode_count(*_JUMPS) > JUMP_COUNT_MIN,
    observed_gas=_broad_share,
    evidence=lambda ctx: {"jumpCount": ctx.opcode_count(*_JUMPS)},
    recommendations=(
        Recommendation(
            title="Cache Storage Variables",
            description="Cache storage variables in memory before loop execution.",
            code_example=(
                "uint length = users.length; // Single SLOAD\n"
                "for (uint i = 0; i < length; i++) {\n"
                "    User memory user = users[i];\n"
                "    if (user.active) {\n"
                "        // process user\n"
                "    }\n"
                "}"
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="2-4 hours",
        ),
        Recommendation(
            title="Implement Loop Bounds",
            description="Add maximum iteration limits to prevent gas limit issues.",
            difficulty=Difficulty.EASY,
            estimated_effort="1 hour",
        ),
    ),
    resources=(
        Resource(
            title="Loop Optimization Patterns",
            url="https://github.com/ethereum/solidity/issues/3779",
            kind=ResourceKind.GUIDE,
        ),
    ),
)

FUNCTION_VISIBILITY = OptimizationPattern(
    id="function-visibility",
    name="Function Visibility Optimization",
    description=(
        "Public functions consume more gas than external functions when "
        "called externally."
    ),
    category=PatternCategory.FUNCTIONS,
    severity=FindingSeverity.MEDIUM,
    static_savings=5_000,
    gas_threshold=5_000,
    conditions=(
        f"More than {DISTINCT_FUNCTIONS_MIN} distinct functions called",
        f"At least one function above {FUNCTION_GAS_MIN:,} gas",
    ),
    predicate=lambda ctx: (
        len(ctx.function_calls) > DISTINCT_FUNCTIONS_MIN
        and _expensive_functions(ctx) > 0
    ),
    observed_gas=_broad_share,
    evidence=lambda ctx: {
        "distinctFunctions": len(ctx.function_calls),
        "expensiveFunctions": _expensive_functions(ctx),
    },
    recommendations=(
        Recommendation(
            title="Use External Visibility",
            description=(
                "Change public functions to external when not called internally."
            ),
            code_example=(
                "function transfer(address to, uint amount) external {\n"
                "    // function logic\n"
                "}"
            ),
            difficulty=Difficulty.EASY,
            estimated_effort="15 minutes",
        ),
    ),
    resources=(
        Resource(
            title="Function Visibility Best Practices",
            url="https://docs.soliditylang.org/en/latest/contracts.html#visibility-and-getters",
            kind=ResourceKind.DOCUMENTATION,
        ),
    ),
)

MEMORY_OPTIMIZATION = OptimizationPattern(
    id="memory-optimization",
    name="Memory Usage Optimization",
    description=(
        "Excessive memory operations increasing gas costs through inefficient "
        "data handling."
    ),
    category=PatternCategory.MEMORY,
    severity=FindingSeverity.MEDIUM,
    static_savings=8_000,
    gas_threshold=10_000,
    required_opcodes=_MEMORY_OPS,
    conditions=(f"More than {MEMORY_OPS_MIN} MLOAD/MSTORE operations",),
    predicate=lambda ctx: ctx.opcode_count(*_MEMORY_OPS) > MEMORY_OPS_MIN,
    observed_gas=lambda ctx: ctx.opcode_gas(*_MEMORY_OPS),
    evidence=lambda ctx: {
        "memoryOpCount": ctx.opcode_count(*_MEMORY_OPS),
        "memoryOpGas": ctx.opcode_gas(*_MEMORY_OPS),
    },
    recommendations=(
        Recommendation(
            title="Optimize Memory Layout",
            description=(
                "Minimize memory allocations and reuse memory slots when possible."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="3-5 hours",
        ),
        Recommendation(
            title="Use Assembly for Memory Operations",
            description=(
                "Use inline assembly for critical memory operations to reduce overhead."
            ),
            difficulty=Difficulty.HARD,
            estimated_effort="1-2 days",
        ),
    ),
    resources=(
        Resource(
            title="Memory Optimization Guide",
            url="https://consensys.net/blog/developers/solidity-memory-and-storage-optimization/",
            kind=ResourceKind.GUIDE,
        ),
    ),
)

DATA_STRUCTURE_OPTIMIZATION = OptimizationPattern(
    id="data-structure-optimization",
    name="Data Structure Optimization",
    description="Inefficient data structures causing unnecessary gas consumption.",
    category=PatternCategory.DATA_STRUCTURES,
    severity=FindingSeverity.HIGH,
    static_savings=25_000,
    gas_threshold=30_000,
    conditions=(f"More than {SLOAD_COUNT_MIN} SLOAD operations",),
    predicate=lambda ctx: ctx.opcode_count("SLOAD") > SLOAD_COUNT_MIN,
    observed_gas=_broad_share,
    evidence=lambda ctx: {
        "sloadCount": ctx.opcode_count("SLOAD"),
        "sloadGas": ctx.opcode_gas("SLOAD"),
    },
    recommendations=(
        Recommendation(
            title="Use Mappings Instead of Arrays",
            description=(
                "Replace arrays with mappings for O(1) access when order is not "
                "important."
            ),
            code_example=(
                "mapping(address => bool) public isUser;\n"
                "function addUser(address user) public {\n"
                "    isUser[user] = true;\n"
                "}"
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="2-3 hours",
        ),
        Recommendation(
            title="Implement Efficient Indexing",
            description="Add index mappings for frequently accessed data.",
            difficulty=Difficulty.MEDIUM,
            estimated_effort="1-2 hours",
        ),
    ),
    resources=(
        Resource(
            title="Data Structure Gas Costs",
            url="https://ethereum.stackexchange.com/questions/3067/why-does-mapping-cost-less-gas-than-array",
            kind=ResourceKind.GUIDE,
        ),
    ),
)

COMPUTATION_OPTIMIZATION = OptimizationPattern(
    id="computation-optimization",
    name="Computation Optimization",
    description="Expensive computational operations that can be optimized or cached.",
    category=PatternCategory.COMPUTATION,
    severity=FindingSeverity.MEDIUM,
    static_savings=12_000,
    gas_threshold=15_000,
    required_opcodes=_COMPUTATION_OPS,
    conditions=(f"More than {COMPUTATION_OPS_MIN} MUL/DIV/MOD/EXP operations",),
    predicate=lambda ctx: ctx.opcode_count(*_COMPUTATION_OPS) > COMPUTATION_OPS_MIN,
    observed_gas=lambda ctx: ctx.opcode_gas(*_COMPUTATION_OPS),
    evidence=lambda ctx: {
        "computationOpCount": ctx.opcode_count(*_COMPUTATION_OPS),
        "computationOpGas": ctx.opcode_gas(*_COMPUTATION_OPS),
    },
    recommendations=(
        Recommendation(
            title="Cache Computation Results",
            description=(
                "Store results of expensive computations to avoid recalculation."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="1-3 hours",
        ),
        Recommendation(
            title="Use Bit Operations",
            description=(
                "Replace division/multiplication by powers of 2 with bit shifts."
            ),
            code_example="uint result = value >> 3; // value / 8",
            difficulty=Difficulty.EASY,
            estimated_effort="30 minutes",
        ),
    ),
    resources=(
        Resource(
            title="Gas Optimization Techniques",
            url="https://consensys.net/blog/developers/solidity-gas-optimization-tips/",
            kind=ResourceKind.GUIDE,
        ),
    ),
)

GAS_CONCENTRATION = OptimizationPattern(
    id="gas-concentration",
    name="High Gas Concentration",
    description="A single contract accounts for most of the transaction's gas.",
    category=PatternCategory.INTERACTIONS,
    severity=FindingSeverity.HIGH,
    static_savings=20_000,
    conditions=(f"Top contract uses more than {GAS_CONCENTRATION_PCT:.0f}% of gas",),
    predicate=lambda ctx: ctx.top_contract_share > GAS_CONCENTRATION_PCT,
    observed_gas=lambda ctx: ctx.top_contract_gas,
    evidence=lambda ctx: {
        "topContractShare": round(ctx.top_contract_share, 2),
        "topContractGas": ctx.top_contract_gas,
    },
    recommendations=(
        Recommendation(
            title="Review the Main Contract",
            description=(
                "Review the main contract for optimization opportunities and "
                "break down complex operations."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="1 day",
        ),
    ),
)

CALL_FAILURE_RATE = OptimizationPattern(
    id="call-failure-rate",
    name="High Call Failure Rate",
    description="A significant share of calls failed during execution.",
    category=PatternCategory.INTERACTIONS,
    severity=FindingSeverity.MEDIUM,
    static_savings=25_000,
    conditions=(f"More than {FAILURE_RATE_PCT:.0f}% of calls failed",),
    predicate=lambda ctx: ctx.failure_rate > FAILURE_RATE_PCT,
    observed_gas=lambda ctx: ctx.failed_gas,
    evidence=lambda ctx: {
        "failureRate": round(ctx.failure_rate, 2),
        "failedGas": ctx.failed_gas,
    },
    recommendations=(
        Recommendation(
            title="Validate Inputs Before Calling",
            description=(
                "Implement better error handling and input validation to reduce "
                "failed calls."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="2-4 hours",
        ),
    ),
)

INTERACTION_COMPLEXITY = OptimizationPattern(
    id="interaction-complexity",
    name="Complex Interaction Pattern",
    description="The transaction fans out across many contracts at depth.",
    category=PatternCategory.INTERACTIONS,
    severity=FindingSeverity.MEDIUM,
    static_savings=10_000,
    conditions=(f"Interaction complexity score above {COMPLEXITY_SCORE_MIN:.0f}",),
    predicate=lambda ctx: ctx.complexity_score > COMPLEXITY_SCORE_MIN,
    observed_gas=_broad_share,
    evidence=lambda ctx: {"complexityScore": round(ctx.complexity_score, 2)},
    recommendations=(
        Recommendation(
            title="Simplify Contract Interactions",
            description=(
                "Consider simplifying contract interactions to reduce gas costs."
            ),
            difficulty=Difficulty.HARD,
            estimated_effort="2-3 days",
        ),
    ),
)

DEEP_CALL_STACK = OptimizationPattern(
    id="deep-call-stack",
    name="Deep Call Stack",
    description="Many operations execute at a call depth greater than 3.",
    category=PatternCategory.FUNCTIONS,
    severity=FindingSeverity.MEDIUM,
    static_savings=5_000,
    conditions=(f"More than {DEEP_STEPS_MIN} operations at call depth > 3",),
    predicate=lambda ctx: ctx.deep_steps > DEEP_STEPS_MIN,
    observed_gas=_broad_share,
    evidence=lambda ctx: {"deepSteps": ctx.deep_steps},
    recommendations=(
        Recommendation(
            title="Flatten the Call Hierarchy",
            description=(
                "Consider flattening the call hierarchy to reduce gas costs and "
                "improve readability."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="4-8 hours",
        ),
    ),
)

STORAGE_SHARE = OptimizationPattern(
    id="storage-optimization",
    name="High Storage Gas Usage",
    description="Storage operations consume a large share of the execution gas.",
    category=PatternCategory.STORAGE,
    severity=FindingSeverity.HIGH,
    static_savings=20_000,
    conditions=(f"Storage opcodes use more than {STORAGE_SHARE_PCT:.0f}% of gas",),
    predicate=lambda ctx: ctx.category_share(Category.STORAGE) > STORAGE_SHARE_PCT,
    observed_gas=lambda ctx: ctx.category_gas(Category.STORAGE),
    evidence=lambda ctx: {
        "storageShare": round(ctx.category_share(Category.STORAGE), 2),
        "storageGas": ctx.category_gas(Category.STORAGE),
    },
    recommendations=(
        Recommendation(
            title="Reduce Storage Traffic",
            description=(
                "Consider using memory instead of storage where possible, batch "
                "storage operations, or use more efficient data structures."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="4-8 hours",
        ),
    ),
)

MEMORY_SHARE = OptimizationPattern(
    id="memory-share",
    name="High Memory Operations",
    description="Memory operations consume a large share of the execution gas.",
    category=PatternCategory.MEMORY,
    severity=FindingSeverity.MEDIUM,
    static_savings=8_000,
    conditions=(f"Memory opcodes use more than {MEMORY_SHARE_PCT:.0f}% of gas",),
    predicate=lambda ctx: ctx.category_share(Category.MEMORY) > MEMORY_SHARE_PCT,
    observed_gas=lambda ctx: ctx.category_gas(Category.MEMORY),
    evidence=lambda ctx: {
        "memoryShare": round(ctx.category_share(Category.MEMORY), 2),
        "memoryGas": ctx.category_gas(Category.MEMORY),
    },
    recommendations=(
        Recommendation(
            title="Trim Memory Usage",
            description=(
                "Optimize memory usage patterns, avoid unnecessary memory "
                "allocations, and use fixed-size arrays where possible."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="2-4 hours",
        ),
    ),
)

HIGH_GAS_PER_STEP = OptimizationPattern(
    id="high-gas-per-step",
    name="High Gas Usage per Step",
    description="The average execution step is unusually expensive.",
    category=PatternCategory.COMPUTATION,
    severity=FindingSeverity.HIGH,
    static_savings=10_000,
    conditions=(f"Average gas per step above {GAS_PER_STEP_MAX:,}",),
    predicate=lambda ctx: ctx.avg_gas_per_step > GAS_PER_STEP_MAX,
    observed_gas=_broad_share,
    evidence=lambda ctx: {"avgGasPerStep": round(ctx.avg_gas_per_step, 2)},
    recommendations=(
        Recommendation(
            title="Reduce Per-Step Cost",
            description=(
                "Consider optimizing expensive operations or reducing "
                "computational complexity."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="1 day",
        ),
    ),
)

MEMORY_SPIKES = OptimizationPattern(
    id="memory-spikes",
    name="Memory Usage Spikes",
    description="Memory size jumps well above its average many times.",
    category=PatternCategory.MEMORY,
    severity=FindingSeverity.MEDIUM,
    static_savings=5_000,
    conditions=(f"More than {MEMORY_SPIKES_MAX} memory spikes",),
    predicate=lambda ctx: ctx.memory_spikes > MEMORY_SPIKES_MAX,
    observed_gas=_broad_share,
    evidence=lambda ctx: {"memorySpikes": ctx.memory_spikes},
    recommendations=(
        Recommendation(
            title="Smooth Memory Allocation",
            description=(
                "Review memory allocation patterns and consider using more "
                "efficient data structures."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="2-4 hours",
        ),
    ),
)

HIGH_GAS_PER_CALL = OptimizationPattern(
    id="high-gas-per-call",
    name="High Gas per Call",
    description="Calls in this transaction are expensive on average.",
    category=PatternCategory.FUNCTIONS,
    severity=FindingSeverity.MEDIUM,
    static_savings=10_000,
    conditions=(f"Average gas per call above {GAS_PER_CALL_MAX:,}",),
    predicate=lambda ctx: ctx.gas_per_call > GAS_PER_CALL_MAX,
    observed_gas=_broad_share,
    evidence=lambda ctx: {"gasPerCall": round(ctx.gas_per_call, 2)},
    recommendations=(
        Recommendation(
            title="Slim Down Hot Functions",
            description=(
                "Optimize contract functions to reduce gas consumption per call."
            ),
            difficulty=Difficulty.MEDIUM,
            estimated_effort="1 day",
        ),
    ),
)

# Emitted only when a trace was analyzed and no other pattern fired.
GENERAL_OPTIMIZATION = OptimizationPattern(
    id="general-optimization",
    name="General Optimization",
    description="Transaction appears to be well-optimized.",
    category=PatternCategory.GENERAL,
    severity=FindingSeverity.LOW,
    static_savings=0,
    predicate=lambda ctx: ctx.has_trace,
    observed_gas=lambda ctx: 0,
    fallback=True,
    recommendations=(
        Recommendation(
            title="Keep Monitoring",
            description=(
                "Continue monitoring gas usage patterns and consider implementing "
                "gas usage tracking for future optimizations."
            ),
            difficulty=Difficulty.EASY,
            estimated_effort="ongoing",
        ),
    ),
)

DEFAULT_PATTERNS: tuple[OptimizationPattern, ...] = (
    STORAGE_PACKING,
    LOOP_OPTIMIZATION,
    FUNCTION_VISIBILITY,
    MEMORY_OPTIMIZATION,
    DATA_STRUCTURE_OPTIMIZATION,
    COMPUTATION_OPTIMIZATION,
    GAS_CONCENTRATION,
    CALL_FAILURE_RATE,
    INTERACTION_COMPLEXITY,
    DEEP_CALL_STACK,
    STORAGE_SHARE,
    MEMORY_SHARE,
    HIGH_GAS_PER_STEP,
    MEMORY_SPIKES,
    HIGH_GAS_PER_CALL,
    GENERAL_OPTIMIZATION,
)


def get_pattern(pattern_id: str) -> OptimizationPattern | None:
    for pattern in DEFAULT_PATTERNS:
        if pattern.id == pattern_id:
            return pattern
    return None
