"""Call-trace aggregator.

Reconstructs the call hierarchy from flat ``CallRecord`` rows and derives
per-contract gas attribution, success rates, value transfers, function-call
statistics, an interaction summary and a contract interaction network.

Hierarchy reconstruction uses an arena (a list of nodes addressed by index)
plus an index map ``tuple(traceAddress) -> arena index``. The address is
authoritative for parent/child linkage; ``parentId`` is only used to detect
orphans and inconsistencies, which are reported as warnings.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tracegas.analyzer.categorizer import color_by_index
from tracegas.core.ratios import percentages, safe_ratio
from tracegas.core.types import (
    CallHierarchy,
    CallHierarchyNode,
    CallRecord,
    CallTrace,
    ContractGasEntry,
    FunctionCallStat,
    InteractionNetwork,
    InteractionSummary,
    NetworkEdge,
    NetworkNode,
    SuccessRateEntry,
    ValueTransfer,
)

logger = logging.getLogger(__name__)


def shorten_address(address: str) -> str:
    if not address or len(address) < 10:
        return address
    return f"{address[:6]}...{address[-4:]}"


@dataclass
class CallTraceAggregate:
    """Everything derived from one call trace."""

    contract_entries: list[ContractGasEntry] = field(default_factory=list)
    call_hierarchy: CallHierarchy = field(default_factory=CallHierarchy)
    value_transfers: list[ValueTransfer] = field(default_factory=list)
    success_rates: list[SuccessRateEntry] = field(default_factory=list)
    interaction_summary: InteractionSummary = field(default_factory=InteractionSummary)
    function_calls: list[FunctionCallStat] = field(default_factory=list)
    network: InteractionNetwork = field(default_factory=InteractionNetwork)
    total_gas: int = 0
    total_calls: int = 0
    failed_gas: int = 0
    warnings: list[str] = field(default_factory=list)


@dataclass
class _ArenaNode:
    record: CallRecord
    children: list[int] = field(default_factory=list)
    orphaned: bool = False


@dataclass
class _ContractTally:
    address: str
    label: str = ""
    gas_used: int = 0
    calls: int = 0
    successful: int = 0
    failed: int = 0


# ── Hierarchy ────────────────────────────────────────────────────────────────


def build_hierarchy(
    records: Sequence[CallRecord],
) -> tuple[CallHierarchy, list[str]]:
    """Reconstruct the call forest. Returns ``(hierarchy, warnings)``."""
    warnings: list[str] = []
    arena = [_ArenaNode(record=r) for r in records]
    known_ids = {r.id for r in records}

    index: dict[tuple[int, ...], int] = {}
    for i, node in enumerate(arena):
        addr = tuple(node.record.trace_address)
        if addr in index:
            first = arena[index[addr]].record.id
            warnings.append(
                f"Call {node.record.id}: duplicate traceAddress {list(addr)} "
                f"(first seen on call {first})"
            )
            continue
        index[addr] = i

    roots: list[int] = []
    for i, node in enumerate(arena):
        record = node.record
        addr = tuple(record.trace_address)

        if record.parent_id is not None and record.parent_id not in known_ids:
            node.orphaned = True
            roots.append(i)
            warnings.append(
                f"Call {record.id}: parent {record.parent_id} not found; "
                f"treated as root"
            )
            continue

        if not addr:
            if record.parent_id is not None:
                warnings.append(
                    f"Call {record.id}: empty traceAddress but parentId "
                    f"{record.parent_id}; treated as root"
                )
            roots.append(i)
            continue

        parent = index.get(addr[:-1])
        if parent is None:
            node.orphaned = True
            roots.append(i)
            warnings.append(
                f"Call {record.id}: no call at traceAddress {list(addr[:-1])}; "
                f"treated as root"
            )
            continue

        parent_record = arena[parent].record
        if record.parent_id is not None and record.parent_id != parent_record.id:
            warnings.append(
                f"Call {record.id}: parentId {record.parent_id} disagrees with "
                f"traceAddress parent {parent_record.id}; using traceAddress"
            )
        arena[parent].children.append(i)

    nodes = []
    for node in arena:
        r = node.record
        nodes.append(CallHierarchyNode(
            id=r.id,
            parent_id=r.parent_id,
            trace_address=list(r.trace_address),
            address=r.to_address,
            label=r.contract_label or shorten_address(r.to_address),
            function_name=r.input_preview or r.call_type,
            call_type=r.call_type,
            gas_used=r.gas_used,
            value=r.value_transferred,
            success=r.success,
            depth=r.depth,
            orphaned=node.orphaned,
            child_ids=[arena[c].record.id for c in node.children],
        ))

    for message in warnings:
        logger.warning(message)

    hierarchy = CallHierarchy(
        nodes=nodes, root_ids=[arena[i].record.id for i in roots]
    )
    return hierarchy, warnings


# ── Aggregator ───────────────────────────────────────────────────────────────


class CallTraceAggregator:
    """Aggregates a call trace into attribution and interaction statistics."""

    def aggregate(self, trace: CallTrace) -> CallTraceAggregate:
        records = trace.call_data
        if not records:
            return CallTraceAggregate()

        stats = trace.stats()
        hierarchy, warnings = build_hierarchy(records)

        tallies: dict[str, _ContractTally] = {}
        functions: dict[str, FunctionCallStat] = {}
        failed_gas = 0
        depth_sum = 0

        for record in records:
            key = record.to_address.lower()
            tally = tallies.get(key)
            if tally is None:
                tally = tallies[key] = _ContractTally(address=record.to_address)
            if not tally.label and record.contract_label:
                tally.label = record.contract_label
            tally.gas_used += record.gas_used
            tally.calls += 1
            if record.success:
                tally.successful += 1
            else:
                tally.failed += 1
                failed_gas += record.gas_used
            depth_sum += record.depth

            if record.input_preview:
                stat = functions.get(record.input_preview)
                if stat is None:
                    stat = functions[record.input_preview] = FunctionCallStat(
                        signature=record.input_preview
                    )
                stat.gas_used += record.gas_used
                stat.count += 1

        ranked = sorted(tallies.values(), key=lambda t: t.gas_used, reverse=True)
        pcts = percentages([t.gas_used for t in ranked], stats.total_gas)
        contract_entries = [
            ContractGasEntry(
                address=t.address,
                label=t.label or shorten_address(t.address),
                gas_used=t.gas_used,
                call_count=t.calls,
                successful_calls=t.successful,
                failed_calls=t.failed,
                percentage_of_total=pct,
                success_rate=safe_ratio(t.successful, t.calls) * 100,
                color=color_by_index(i),
            )
            for i, (t, pct) in enumerate(zip(ranked, pcts))
        ]

        success_rates = [
            SuccessRateEntry(
                address=t.address,
                label=t.label or shorten_address(t.address),
                total_calls=t.calls,
                successful_calls=t.successful,
                failed_calls=t.failed,
                success_rate=safe_ratio(t.successful, t.calls) * 100,
            )
            for t in tallies.values()
        ]

        transfers = sorted(
            (
                ValueTransfer(
                    call_id=r.id,
                    from_address=r.from_address,
                    to_address=r.to_address,
                    value=r.value_transferred,
                    gas_used=r.gas_used,
                    success=r.success,
                )
                for r in records
                if r.value_transferred > 0
            ),
            key=lambda v: v.value,
            reverse=True,
        )

        n = len(records)
        failed = sum(t.failed for t in tallies.values())
        avg_depth = safe_ratio(depth_sum, n)
        most_called = max(tallies.values(), key=lambda t: t.calls)
        summary = InteractionSummary(
            unique_contracts=len(tallies),
            most_called_contract=most_called.address,
            most_called_count=most_called.calls,
            average_call_depth=avg_depth,
            failed_call_count=failed,
            failure_rate=safe_ratio(failed, n) * 100,
            total_value_transferred=sum(r.value_transferred for r in records),
            complexity_score=len(tallies) * avg_depth + failed,
        )

        function_calls = sorted(
            functions.values(), key=lambda f: f.gas_used, reverse=True
        )

        logger.debug(
            "Aggregated call trace: %d calls, %d contracts, %d roots",
            n, len(tallies), len(hierarchy.root_ids),
        )

        return CallTraceAggregate(
            contract_entries=contract_entries,
            call_hierarchy=hierarchy,
            value_transfers=transfers,
            success_rates=success_rates,
            interaction_summary=summary,
            function_calls=function_calls,
            network=build_network(records),
            total_gas=stats.total_gas,
            total_calls=stats.total_calls or n,
            failed_gas=failed_gas,
            warnings=warnings,
        )


# ── Network ──────────────────────────────────────────────────────────────────


def build_network(records: Sequence[CallRecord]) -> InteractionNetwork:
    """Contract interaction graph: one node per address, one edge per call."""
    nodes: dict[str, NetworkNode] = {}
    targets = {r.to_address for r in records}
    edges: list[NetworkEdge] = []

    for i, record in enumerate(records):
        for address in (record.from_address, record.to_address):
            if address not in nodes:
                nodes[address] = NetworkNode(
                    id=address,
                    label=shorten_address(address),
                    kind="contract" if address in targets else "eoa",
                )
        nodes[record.from_address].call_count += 1
        target = nodes[record.to_address]
        target.gas_used += record.gas_used
        target.value += record.value_transferred

        edges.append(NetworkEdge(
            id=f"{record.from_address}-{record.to_address}-{i}",
            source=record.from_address,
            target=record.to_address,
            gas_used=record.gas_used,
            value=record.value_transferred,
            call_type=record.call_type,
            success=record.success,
        ))

    return InteractionNetwork(nodes=list(nodes.values()), edges=edges)
