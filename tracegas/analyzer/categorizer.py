"""Opcode categorizer and category theme colors.

Maps an EVM mnemonic to one of a closed set of semantic categories. The
lookup table is built once at import time in upper case; lookups are
case-insensitive and unknown mnemonics fall back to ``Other``.
"""

from __future__ import annotations

from tracegas.core.types import Category

# ── Opcode Table ─────────────────────────────────────────────────────────────

_COMPUTATION = (
    # Arithmetic
    "ADD", "MUL", "SUB", "DIV", "SDIV", "MOD", "SMOD", "ADDMOD", "MULMOD",
    "EXP", "SIGNEXTEND",
    # Comparison
    "LT", "GT", "SLT", "SGT", "EQ", "ISZERO",
    # Bitwise
    "AND", "OR", "XOR", "NOT", "BYTE", "SHL", "SHR", "SAR",
)
_STORAGE = ("SLOAD", "SSTORE", "TLOAD", "TSTORE")
_MEMORY = ("MLOAD", "MSTORE", "MSTORE8", "MSIZE", "MCOPY")
_CONTROL_FLOW = (
    "JUMP", "JUMPI", "JUMPDEST", "PC", "STOP", "RETURN", "REVERT", "INVALID",
)
_SYSTEM = (
    # Calls and creates
    "CREATE", "CREATE2", "CALL", "CALLCODE", "DELEGATECALL", "STATICCALL",
    "SELFDESTRUCT",
    # Logs
    "LOG0", "LOG1", "LOG2", "LOG3", "LOG4",
    # Environment
    "ADDRESS", "BALANCE", "ORIGIN", "CALLER", "CALLVALUE", "CALLDATALOAD",
    "CALLDATASIZE", "CALLDATACOPY", "CODESIZE", "CODECOPY", "GASPRICE",
    "EXTCODESIZE", "EXTCODECOPY", "RETURNDATASIZE", "RETURNDATACOPY",
    "EXTCODEHASH",
    # Block
    "BLOCKHASH", "COINBASE", "TIMESTAMP", "NUMBER", "DIFFICULTY",
    "PREVRANDAO", "GASLIMIT", "CHAINID", "SELFBALANCE", "BASEFEE",
    "BLOBHASH", "BLOBBASEFEE",
    "GAS",
)
_CRYPTO = ("SHA3", "KECCAK256")
_STACK = (
    ("POP",)
    + tuple(f"PUSH{i}" for i in range(0, 33))
    + tuple(f"DUP{i}" for i in range(1, 17))
    + tuple(f"SWAP{i}" for i in range(1, 17))
)

OPCODE_CATEGORIES: dict[str, Category] = {}
for _category, _opcodes in (
    (Category.COMPUTATION, _COMPUTATION),
    (Category.STORAGE, _STORAGE),
    (Category.MEMORY, _MEMORY),
    (Category.CONTROL_FLOW, _CONTROL_FLOW),
    (Category.SYSTEM, _SYSTEM),
    (Category.CRYPTO, _CRYPTO),
    (Category.OTHER, _STACK),
):
    for _op in _opcodes:
        OPCODE_CATEGORIES[_op.upper()] = _category


def categorize(opcode: str) -> Category:
    """Return the semantic category of an opcode mnemonic."""
    return OPCODE_CATEGORIES.get(opcode.strip().upper(), Category.OTHER)


# ── Theme ────────────────────────────────────────────────────────────────────

CATEGORY_COLORS: dict[Category, str] = {
    Category.COMPUTATION: "#3b82f6",
    Category.STORAGE: "#ef4444",
    Category.MEMORY: "#10b981",
    Category.CONTROL_FLOW: "#f59e0b",
    Category.SYSTEM: "#8b5cf6",
    Category.CRYPTO: "#ec4899",
    Category.OTHER: "#6b7280",
}

PALETTE: tuple[str, ...] = (
    "#3b82f6", "#10b981", "#f59e0b", "#ef4444", "#8b5cf6",
    "#06b6d4", "#ec4899", "#84cc16", "#f97316", "#6366f1",
)


def category_color(category: Category) -> str:
    return CATEGORY_COLORS.get(category, CATEGORY_COLORS[Category.OTHER])


def color_by_index(index: int) -> str:
    """Cyclic palette color for ranked series (contracts, edges)."""
    return PALETTE[index % len(PALETTE)]
