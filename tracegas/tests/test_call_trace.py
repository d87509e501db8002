"""Tests for tracegas.analyzer.call_trace — hierarchy reconstruction and attribution."""

from __future__ import annotations

import json
import logging

import pytest

from tracegas.analyzer.call_trace import (
    CallTraceAggregator,
    build_hierarchy,
    build_network,
    shorten_address,
)
from tracegas.core.types import CallTrace, TransactionStats
from tracegas.tests.conftest import POOL, ROUTER, TOKEN, USER, make_call


@pytest.fixture
def aggregator() -> CallTraceAggregator:
    return CallTraceAggregator()


class TestHierarchy:

    def test_simple_tree(self, call_records):
        hierarchy, warnings = build_hierarchy(call_records)
        assert warnings == []
        assert hierarchy.root_ids == ["c0"]
        root = hierarchy.roots()[0]
        assert root.child_ids == ["c1", "c2"]
        c2 = hierarchy.by_id()["c2"]
        assert c2.child_ids == ["c3"]
        assert hierarchy.children(c2)[0].depth == 2

    def test_nodes_keep_trace_order(self, call_records):
        hierarchy, _ = build_hierarchy(call_records)
        assert [n.id for n in hierarchy.nodes] == [r.id for r in call_records]

    def test_every_record_appears_once(self, call_records):
        hierarchy, _ = build_hierarchy(call_records)
        ids = [n.id for n in hierarchy.walk()]
        assert sorted(ids) == sorted(r.id for r in call_records)

    def test_child_before_parent_in_input(self, call_records):
        hierarchy, warnings = build_hierarchy(list(reversed(call_records)))
        assert warnings == []
        assert hierarchy.root_ids == ["c0"]

    def test_unresolved_parent_id_makes_orphan_root(self):
        records = [
            make_call("root", [], ROUTER, 1000),
            make_call("child", [0], TOKEN, 500, parent_id="ghost"),
        ]
        hierarchy, warnings = build_hierarchy(records)
        roots = hierarchy.roots()
        assert [r.id for r in roots] == ["root", "child"]
        assert roots[1].orphaned is True
        assert roots[0].child_ids == []
        assert len(warnings) == 1
        assert "ghost" in warnings[0]

    def test_missing_address_prefix_makes_orphan_root(self):
        records = [
            make_call("root", [], ROUTER, 1000),
            make_call("lost", [3, 1], TOKEN, 500),
        ]
        hierarchy, warnings = build_hierarchy(records)
        assert len(hierarchy.root_ids) == 2
        assert hierarchy.roots()[1].orphaned
        assert len(warnings) == 1

    def test_parent_mismatch_address_wins(self):
        records = [
            make_call("root", [], ROUTER, 1000),
            make_call("a", [0], TOKEN, 500, parent_id="root"),
            make_call("b", [0, 0], POOL, 200, parent_id="root"),
        ]
        hierarchy, warnings = build_hierarchy(records)
        assert hierarchy.root_ids == ["root"]
        assert hierarchy.by_id()["a"].child_ids == ["b"]
        assert len(warnings) == 1
        assert "disagrees" in warnings[0]

    def test_root_with_resolvable_parent_id_warns(self):
        records = [
            make_call("root", [], ROUTER, 1000),
            make_call("other", [], TOKEN, 500, parent_id="root"),
        ]
        hierarchy, warnings = build_hierarchy(records)
        assert len(hierarchy.root_ids) == 2
        assert any("empty traceAddress" in w for w in warnings)

    def test_duplicate_trace_address_first_wins(self):
        records = [
            make_call("root", [], ROUTER, 1000),
            make_call("first", [0], TOKEN, 500),
            make_call("second", [0], POOL, 300),
            make_call("grandchild", [0, 0], POOL, 100),
        ]
        hierarchy, warnings = build_hierarchy(records)
        assert hierarchy.roots()[0].child_ids == ["first", "second"]
        assert hierarchy.by_id()["first"].child_ids == ["grandchild"]
        assert any("duplicate traceAddress" in w for w in warnings)

    def test_deep_chain_is_not_recursive(self):
        depth = 2000
        records = [make_call("n0", [], ROUTER, 1)]
        for i in range(1, depth):
            records.append(make_call(f"n{i}", [0] * i, TOKEN, 1, parent_id=f"n{i - 1}"))
        hierarchy, warnings = build_hierarchy(records)
        assert warnings == []
        assert hierarchy.root_ids == ["n0"]
        assert len(list(hierarchy.walk())) == depth

        dumped = hierarchy.model_dump(mode="json", by_alias=True)
        assert dumped["rootIds"] == ["n0"]
        assert len(dumped["nodes"]) == depth
        assert dumped["nodes"][depth - 2]["childIds"] == [f"n{depth - 1}"]
        assert json.loads(json.dumps(dumped)) == dumped

    def test_orphan_warning_is_logged(self, caplog):
        records = [make_call("x", [0], TOKEN, 1, parent_id="nope")]
        with caplog.at_level(logging.WARNING, logger="tracegas.analyzer.call_trace"):
            build_hierarchy(records)
        assert any("nope" in r.getMessage() for r in caplog.records)

    def test_function_name_falls_back_to_call_type(self):
        hierarchy, _ = build_hierarchy([make_call("r", [], ROUTER, 1, call_type="DELEGATECALL")])
        assert hierarchy.nodes[0].function_name == "DELEGATECALL"


class TestAttribution:

    def test_gas_grouped_by_target(self, aggregator, call_trace):
        agg = aggregator.aggregate(call_trace)
        by_addr = {e.address: e for e in agg.contract_entries}
        assert by_addr[TOKEN].gas_used == 40_000
        assert by_addr[TOKEN].call_count == 2
        assert by_addr[TOKEN].label == "Token"
        assert agg.contract_entries[0].address == ROUTER

    def test_percentages_never_exceed_100(self, aggregator, call_trace):
        agg = aggregator.aggregate(call_trace)
        assert sum(e.percentage_of_total for e in agg.contract_entries) <= 100.0 + 1e-9

    def test_percentage_against_transaction_total(self, aggregator, call_records):
        trace = CallTrace(
            call_data=tuple(call_records),
            transaction_stats=TransactionStats(total_calls=4, total_gas=400_000, errors=0),
        )
        agg = aggregator.aggregate(trace)
        router = next(e for e in agg.contract_entries if e.address == ROUTER)
        assert router.percentage_of_total == pytest.approx(25.0)

    def test_zero_transaction_total_gives_zero_percentages(self, aggregator):
        trace = CallTrace(
            call_data=(make_call("c0", [], ROUTER, 500),),
            transaction_stats=TransactionStats(total_calls=1, total_gas=0, errors=0),
        )
        agg = aggregator.aggregate(trace)
        assert agg.total_gas == 0
        assert [e.percentage_of_total for e in agg.contract_entries] == [0.0]

    def test_total_calls_prefers_transaction_stats(self, aggregator, call_records):
        trace = CallTrace(
            call_data=tuple(call_records),
            transaction_stats=TransactionStats(total_calls=10, total_gas=400_000, errors=0),
        )
        assert aggregator.aggregate(trace).total_calls == 10

    def test_total_calls_defaults_to_record_count(self, aggregator, call_trace):
        assert aggregator.aggregate(call_trace).total_calls == 4

    def test_derived_total_gas_from_roots(self, aggregator, call_trace):
        assert aggregator.aggregate(call_trace).total_gas == 100_000

    def test_unlabelled_contract_uses_short_address(self, aggregator, call_trace):
        agg = aggregator.aggregate(call_trace)
        pool = next(e for e in agg.contract_entries if e.address == POOL)
        assert pool.label == shorten_address(POOL)
        assert "..." in pool.label

    def test_success_rates(self, aggregator):
        trace = CallTrace(call_data=(
            make_call("r", [], ROUTER, 1000),
            make_call("a", [0], TOKEN, 100, error="revert"),
            make_call("b", [1], TOKEN, 100),
        ))
        agg = aggregator.aggregate(trace)
        token = next(s for s in agg.success_rates if s.address == TOKEN)
        assert token.total_calls == 2
        assert token.failed_calls == 1
        assert token.success_rate == pytest.approx(50.0)
        assert agg.failed_gas == 100


class TestInteractions:

    def test_value_transfers_sorted_desc(self, aggregator):
        trace = CallTrace(call_data=(
            make_call("r", [], ROUTER, 1000, value_transferred=0.5),
            make_call("a", [0], TOKEN, 100, value_transferred=2.0),
            make_call("b", [1], POOL, 100),
            make_call("c", [2], POOL, 100, value_transferred=0.5),
        ))
        transfers = aggregator.aggregate(trace).value_transfers
        assert [t.call_id for t in transfers] == ["a", "r", "c"]
        assert transfers[0].from_address == USER

    def test_summary(self, aggregator, call_trace):
        summary = aggregator.aggregate(call_trace).interaction_summary
        assert summary.unique_contracts == 3
        assert summary.most_called_contract == TOKEN
        assert summary.most_called_count == 2
        assert summary.average_call_depth == pytest.approx((0 + 1 + 1 + 2) / 4)
        assert summary.failed_call_count == 0
        assert summary.failure_rate == 0.0
        assert summary.total_value_transferred == pytest.approx(1.5)
        assert summary.complexity_score == pytest.approx(3 * 1.0 + 0)

    def test_most_called_tie_first_encountered(self, aggregator):
        trace = CallTrace(call_data=(
            make_call("r", [], ROUTER, 10),
            make_call("a", [0], TOKEN, 10),
        ))
        assert aggregator.aggregate(trace).interaction_summary.most_called_contract == ROUTER

    def test_function_calls_grouped(self, aggregator, call_trace):
        stats = aggregator.aggregate(call_trace).function_calls
        assert len(stats) == 4
        assert stats[0].signature == "swap(uint256)"

    def test_network(self, call_records):
        network = build_network(call_records)
        ids = {n.id for n in network.nodes}
        assert ids == {USER, ROUTER, TOKEN, POOL}
        kinds = {n.id: n.kind for n in network.nodes}
        assert kinds[USER] == "eoa"
        assert kinds[TOKEN] == "contract"
        assert len(network.edges) == len(call_records)
        token = next(n for n in network.nodes if n.id == TOKEN)
        assert token.gas_used == 40_000

    def test_empty_trace(self, aggregator):
        agg = aggregator.aggregate(CallTrace())
        assert agg.contract_entries == []
        assert agg.call_hierarchy.nodes == []
        assert agg.total_gas == 0
