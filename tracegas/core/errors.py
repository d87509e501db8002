"""Error codes, validation issues, and failure values.

Validation never raises into the caller: problems are collected into a
``ValidationReport`` and surfaced as an ``AnalysisFailure`` value so the
caller can decide whether to abort or retry with corrected data.
``TraceGasError`` is reserved for the API/CLI boundary.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


# ── Error Codes ──────────────────────────────────────────────────────────────


class ErrorCode(str, Enum):
    """Standard error codes shared by the pipeline, API and CLI."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    BAD_REQUEST = "BAD_REQUEST"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class IssueSource(str, Enum):
    """Which input an issue was found in."""

    STRUCT_LOG = "struct_log"
    CALL_TRACE = "call_trace"
    PRICING = "pricing"
    REQUEST = "request"


# ── Schemas ──────────────────────────────────────────────────────────────────


class ValidationIssue(BaseModel):
    """A single problem found in an input payload."""

    source: IssueSource
    field: str
    message: str
    type: str = "value_error"

    def __str__(self) -> str:
        return f"{self.source.value}.{self.field}: {self.message}"


class ValidationReport(BaseModel):
    """Exhaustive validation outcome for one or more inputs."""

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def merge(self, other: "ValidationReport") -> "ValidationReport":
        return ValidationReport(
            issues=[*self.issues, *other.issues],
            warnings=[*self.warnings, *other.warnings],
        )


class AnalysisFailure(BaseModel):
    """Typed failure value returned instead of a result."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    message: str
    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: ValidationReport) -> "AnalysisFailure":
        code = ErrorCode.VALIDATION_ERROR
        if any(i.type == "size_limit" for i in report.issues):
            code = ErrorCode.PAYLOAD_TOO_LARGE
        return cls(
            code=code,
            message=f"Trace validation failed: {len(report.issues)} issue(s)",
            issues=report.issues,
            warnings=report.warnings,
        )


# ── Exceptions ───────────────────────────────────────────────────────────────


class TraceGasError(Exception):
    """Domain error with structured code + message for the outer surfaces."""

    def __init__(
        self,
        status_code: int,
        code: ErrorCode,
        message: str,
        issues: list[ValidationIssue] | None = None,
    ):
        self.status_code = status_code
        self.code = code
        self.message = message
        self.issues = issues or []
        super().__init__(message)

    @classmethod
    def from_failure(cls, failure: AnalysisFailure) -> "TraceGasError":
        status = 413 if failure.code == ErrorCode.PAYLOAD_TOO_LARGE else 422
        return cls(
            status_code=status,
            code=failure.code,
            message=failure.message,
            issues=list(failure.issues),
        )
