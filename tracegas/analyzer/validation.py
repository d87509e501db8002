"""Exhaustive input validation.

Structural problems are reported by pydantic, which collects every field
error in one pass. Semantic checks (ordering, uniqueness, contradictions,
size caps) run on the raw payload so they are reported even when the
structural checks fail. Nothing here raises: every problem becomes a
``ValidationIssue`` in the returned report.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ValidationError

from tracegas.core.config import Settings, get_settings
from tracegas.core.errors import IssueSource, ValidationIssue, ValidationReport
from tracegas.core.types import CallTrace, PricingConfig, StructLogTrace

logger = logging.getLogger(__name__)


def _as_raw(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump(by_alias=True)
    return payload


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def error_issues(
    source: IssueSource,
    errors: Iterable[dict[str, Any]],
    skip_loc: tuple[str, ...] = (),
) -> list[ValidationIssue]:
    """Convert pydantic-style error dicts into ``ValidationIssue`` rows."""
    issues = []
    for err in errors:
        parts = [str(part) for part in err.get("loc", ()) if part not in skip_loc]
        issues.append(ValidationIssue(
            source=source,
            field=".".join(parts) or "__root__",
            message=err.get("msg", "Invalid value"),
            type=err.get("type", "value_error"),
        ))
    return issues


def pydantic_issues(source: IssueSource, exc: ValidationError) -> list[ValidationIssue]:
    return error_issues(source, exc.errors())


class TraceValidator:
    """Validates raw struct logs, call traces and pricing payloads."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    # ── Struct Log ───────────────────────────────────────────────────────

    def validate_struct_log(
        self, payload: Any
    ) -> tuple[StructLogTrace | None, ValidationReport]:
        report = ValidationReport()
        if payload is None:
            return None, report

        raw = _as_raw(payload)
        report.issues.extend(self._struct_log_semantics(raw))

        trace: StructLogTrace | None = None
        if isinstance(payload, StructLogTrace):
            trace = payload
        else:
            try:
                trace = StructLogTrace.model_validate(raw)
            except ValidationError as exc:
                report.issues.extend(pydantic_issues(IssueSource.STRUCT_LOG, exc))

        if trace is not None:
            report.warnings.extend(self._struct_log_warnings(trace))
        return (trace if report.is_valid else None), report

    def _struct_log_semantics(self, raw: Any) -> list[ValidationIssue]:
        if not isinstance(raw, dict):
            return []
        steps = raw.get("steps")
        if not isinstance(steps, (list, tuple)):
            return []

        issues: list[ValidationIssue] = []
        if len(steps) > self.settings.max_trace_steps:
            issues.append(ValidationIssue(
                source=IssueSource.STRUCT_LOG,
                field="steps",
                message=(
                    f"Struct log has {len(steps)} steps; the limit is "
                    f"{self.settings.max_trace_steps}"
                ),
                type="size_limit",
            ))
            return issues

        seen: set[int] = set()
        previous: int | None = None
        for i, item in enumerate(steps):
            if not isinstance(item, dict) or not _is_int(item.get("step")):
                continue
            index = item["step"]
            if index in seen:
                issues.append(ValidationIssue(
                    source=IssueSource.STRUCT_LOG,
                    field=f"steps.{i}.step",
                    message=f"Duplicate step index {index}",
                    type="duplicate_step",
                ))
            elif previous is not None and index < previous:
                issues.append(ValidationIssue(
                    source=IssueSource.STRUCT_LOG,
                    field=f"steps.{i}.step",
                    message=(
                        f"Step index {index} is not greater than previous "
                        f"index {previous}"
                    ),
                    type="non_monotonic_step",
                ))
            seen.add(index)
            previous = index if previous is None else max(previous, index)
        return issues

    def _struct_log_warnings(self, trace: StructLogTrace) -> list[str]:
        warnings: list[str] = []
        n = len(trace.steps)
        if n > self.settings.large_struct_log_warning:
            warnings.append(f"Large struct log: {n} steps may slow down analysis")

        summary = trace.summary
        if summary is not None:
            total_gas = sum(s.gas_cost for s in trace.steps)
            if summary.total_steps != n:
                warnings.append(
                    f"Struct log summary reports {summary.total_steps} steps "
                    f"but {n} were provided"
                )
            if summary.total_gas_cost != total_gas:
                warnings.append(
                    f"Struct log summary reports {summary.total_gas_cost} gas "
                    f"but steps sum to {total_gas}"
                )
        for message in warnings:
            logger.warning(message)
        return warnings

    # ── Call Trace ───────────────────────────────────────────────────────

    def validate_call_trace(
        self, payload: Any
    ) -> tuple[CallTrace | None, ValidationReport]:
        report = ValidationReport()
        if payload is None:
            return None, report

        raw = _as_raw(payload)
        report.issues.extend(self._call_trace_semantics(raw))

        trace: CallTrace | None = None
        if isinstance(payload, CallTrace):
            trace = payload
        else:
            try:
                trace = CallTrace.model_validate(raw)
            except ValidationError as exc:
                report.issues.extend(pydantic_issues(IssueSource.CALL_TRACE, exc))

        if trace is not None and len(trace.call_data) > self.settings.large_call_trace_warning:
            message = (
                f"Large call trace: {len(trace.call_data)} calls may slow down analysis"
            )
            logger.warning(message)
            report.warnings.append(message)
        return (trace if report.is_valid else None), report

    def _call_trace_semantics(self, raw: Any) -> list[ValidationIssue]:
        if not isinstance(raw, dict):
            return []
        calls = raw.get("callData", raw.get("call_data"))
        if not isinstance(calls, (list, tuple)):
            return []

        issues: list[ValidationIssue] = []
        if len(calls) > self.settings.max_trace_calls:
            issues.append(ValidationIssue(
                source=IssueSource.CALL_TRACE,
                field="callData",
                message=(
                    f"Call trace has {len(calls)} calls; the limit is "
                    f"{self.settings.max_trace_calls}"
                ),
                type="size_limit",
            ))
            return issues

        seen: set[str] = set()
        for i, item in enumerate(calls):
            if not isinstance(item, dict):
                continue
            call_id = item.get("id")
            if isinstance(call_id, str):
                if call_id in seen:
                    issues.append(ValidationIssue(
                        source=IssueSource.CALL_TRACE,
                        field=f"callData.{i}.id",
                        message=f"Duplicate call id {call_id!r}",
                        type="duplicate_id",
                    ))
                seen.add(call_id)

            success = item.get("success")
            error = item.get("error")
            if isinstance(success, bool) and success == bool(error):
                if success:
                    message = f"Call marked successful but has error {error!r}"
                else:
                    message = "Call marked failed but has no error message"
                issues.append(ValidationIssue(
                    source=IssueSource.CALL_TRACE,
                    field=f"callData.{i}.success",
                    message=message,
                    type="success_error_mismatch",
                ))
        return issues

    # ── Pricing ──────────────────────────────────────────────────────────

    def validate_pricing(
        self, payload: Any
    ) -> tuple[PricingConfig | None, ValidationReport]:
        report = ValidationReport()
        if payload is None:
            return PricingConfig.from_settings(self.settings), report
        if isinstance(payload, PricingConfig):
            return payload, report
        try:
            return PricingConfig.model_validate(payload), report
        except ValidationError as exc:
            report.issues.extend(pydantic_issues(IssueSource.PRICING, exc))
            return None, report
