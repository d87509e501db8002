"""Tests for tracegas.analyzer.categorizer — opcode categories and theme colors."""

from __future__ import annotations

import pytest

from tracegas.analyzer.categorizer import (
    CATEGORY_COLORS,
    PALETTE,
    categorize,
    category_color,
    color_by_index,
)
from tracegas.core.types import Category


class TestCategorize:

    @pytest.mark.parametrize("opcode, expected", [
        ("ADD", Category.COMPUTATION),
        ("EXP", Category.COMPUTATION),
        ("ISZERO", Category.COMPUTATION),
        ("SHR", Category.COMPUTATION),
        ("SLOAD", Category.STORAGE),
        ("SSTORE", Category.STORAGE),
        ("MSTORE8", Category.MEMORY),
        ("MCOPY", Category.MEMORY),
        ("JUMPI", Category.CONTROL_FLOW),
        ("REVERT", Category.CONTROL_FLOW),
        ("DELEGATECALL", Category.SYSTEM),
        ("LOG3", Category.SYSTEM),
        ("CALLDATALOAD", Category.SYSTEM),
        ("TIMESTAMP", Category.SYSTEM),
        ("GAS", Category.SYSTEM),
        ("SHA3", Category.CRYPTO),
        ("KECCAK256", Category.CRYPTO),
        ("POP", Category.OTHER),
    ])
    def test_known_opcodes(self, opcode, expected):
        assert categorize(opcode) == expected

    def test_case_insensitive(self):
        assert categorize("sstore") == Category.STORAGE
        assert categorize("Keccak256") == Category.CRYPTO
        assert categorize(" add ") == Category.COMPUTATION

    def test_unknown_is_other(self):
        assert categorize("NOT_AN_OPCODE") == Category.OTHER
        assert categorize("") == Category.OTHER

    @pytest.mark.parametrize("opcode", ["PUSH0", "PUSH1", "PUSH32", "DUP1", "DUP16", "SWAP1", "SWAP16"])
    def test_generated_stack_ops(self, opcode):
        assert categorize(opcode) == Category.OTHER

    def test_out_of_range_stack_ops_are_unknown(self):
        # Still Other, but via the unknown fallback.
        assert categorize("PUSH33") == Category.OTHER
        assert categorize("DUP17") == Category.OTHER


class TestTheme:

    def test_every_category_has_a_color(self):
        for category in Category:
            assert category_color(category).startswith("#")
        assert set(CATEGORY_COLORS) == set(Category)

    def test_palette_cycles(self):
        assert color_by_index(0) == PALETTE[0]
        assert color_by_index(len(PALETTE)) == PALETTE[0]
        assert color_by_index(len(PALETTE) + 3) == PALETTE[3]
