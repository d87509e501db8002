"""tracegas CLI — local trace analysis and gas optimization.

Usage:
    tracegas analyze --struct-log <file> --call-trace <file>
    tracegas patterns               List the optimization pattern table
    tracegas config                 Show current configuration
    tracegas --version              Print version

Examples:
    tracegas analyze --struct-log steps.json
    tracegas analyze --call-trace calls.json --gas-price-gwei 35 --usd-price 3100
    tracegas analyze --struct-log steps.json --call-trace calls.json --format json -o result.json

Exit codes: 0 success, 1 validation failure, 2 usage or I/O error.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from tracegas import __version__
from tracegas.core.errors import AnalysisFailure
from tracegas.core.types import UnifiedAnalysisResult

EXIT_OK = 0
EXIT_VALIDATION = 1
EXIT_USAGE = 2


# ── Coloured output helpers ──────────────────────────────────────────────────

_RESET = "\033[0m"
_BOLD = "\033[1m"
_RED = "\033[91m"
_YELLOW = "\033[93m"
_GREEN = "\033[92m"
_CYAN = "\033[96m"
_DIM = "\033[2m"

_SEV_COLOR = {
    "critical": _RED,
    "high": "\033[38;5;208m",  # orange
    "medium": _YELLOW,
    "low": _CYAN,
}


def _c(text: str, code: str) -> str:
    return f"{code}{text}{_RESET}"


# ── Banner ───────────────────────────────────────────────────────────────────

BANNER = f"""
{_BOLD}{_CYAN}tracegas{_RESET}  {_DIM}EVM trace analysis & gas optimization — v{__version__}{_RESET}
"""


# ── CLI argument parser ─────────────────────────────────────────────────────


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tracegas",
        description="tracegas — EVM trace analysis and gas optimization engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="store_true", help="Print version and exit")
    parser.add_argument("--no-banner", action="store_true", help="Suppress the startup banner")
    parser.add_argument("--quiet", "-q", action="store_true", help="Minimal output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log pipeline activity to stderr")

    sub = parser.add_subparsers(dest="command")

    # ── analyze ──────────────────────────────────────────────────────────────
    analyze_p = sub.add_parser("analyze", help="Analyze a struct log and/or call trace")
    analyze_p.add_argument("--struct-log", "-s", help="Path to struct log JSON")
    analyze_p.add_argument("--call-trace", "-c", help="Path to call trace JSON")
    analyze_p.add_argument(
        "--gas-price-gwei", type=float, help="Gas price in gwei (default: from settings)"
    )
    analyze_p.add_argument(
        "--usd-price", type=float, help="Native currency price in USD (default: from settings)"
    )
    analyze_p.add_argument(
        "--format",
        "-f",
        default="table",
        choices=["table", "json"],
        help="Output format (default: table)",
    )
    analyze_p.add_argument("--output", "-o", help="Write output to file instead of stdout")

    # ── patterns ─────────────────────────────────────────────────────────────
    sub.add_parser("patterns", help="List optimization patterns")

    # ── config ───────────────────────────────────────────────────────────────
    sub.add_parser("config", help="Show current configuration")

    return parser


# ── Analyze command ──────────────────────────────────────────────────────────


def _load_json(path_str: str, list_key: str) -> Any:
    """Load a trace file. A bare JSON array is wrapped under ``list_key``."""
    path = Path(path_str)
    if not path.is_file():
        raise FileNotFoundError(f"file '{path}' does not exist")
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        data = {list_key: data}
    return data


def _build_pricing(args: argparse.Namespace) -> dict[str, float] | None:
    from tracegas.core.config import get_settings

    if args.gas_price_gwei is None and args.usd_price is None:
        return None
    settings = get_settings()
    return {
        "gasPriceGwei": (
            args.gas_price_gwei if args.gas_price_gwei is not None else settings.gas_price_gwei
        ),
        "nativeUsdPrice": (
            args.usd_price if args.usd_price is not None else settings.native_usd_price
        ),
    }


def _print_failure(failure: AnalysisFailure) -> None:
    print(_c(f"\n{failure.message}", _RED), file=sys.stderr)
    for issue in failure.issues:
        print(f"  {_DIM}-{_RESET} {issue}", file=sys.stderr)
    for warning in failure.warnings:
        print(_c(f"  ! {warning}", _YELLOW), file=sys.stderr)


def _print_table(result: UnifiedAnalysisResult, quiet: bool = False) -> None:
    """Pretty-print an analysis result."""
    print(f"\n{_BOLD}Analysis complete{_RESET} — source: {result.source.value}")
    print(f"  Total gas used: {_c(f'{result.total_gas_used:,}', _CYAN)}\n")

    if result.efficiency_metrics and not quiet:
        print(f"  {_BOLD}Efficiency{_RESET}")
        for m in result.efficiency_metrics:
            color = _GREEN if m.score >= 80 else _YELLOW if m.score >= 60 else _RED
            print(
                f"    {m.name:<20} {_c(f'{m.score:5.1f}/100', color)}"
                f"  {_DIM}{m.value:,.2f} {m.unit} (benchmark {m.benchmark:,.0f}){_RESET}"
            )
        print()

    if result.gas_breakdown and not quiet:
        print(f"  {_BOLD}Gas breakdown{_RESET}")
        for row in result.gas_breakdown:
            print(
                f"    {row.kind.value:<9} {row.label[:32]:<32} "
                f"{row.gas_used:>12,}  {row.percentage_of_total:6.2f}%"
            )
        print()

    if result.cost_analysis and not quiet:
        print(f"  {_BOLD}Cost{_RESET}")
        for entry in result.cost_analysis:
            print(
                f"    {entry.label[:32]:<32} {entry.cost_native:.6f} native"
                f"  ${entry.cost_usd:,.2f}"
            )
        print()

    findings = result.optimization_findings
    if not findings:
        print(_c("  ✓ No optimization opportunities detected.", _GREEN))
    for i, f in enumerate(findings, 1):
        sev_col = _SEV_COLOR.get(f.severity.value, "")
        badge = _c(f" {f.severity.value.upper()} ", sev_col + _BOLD)
        savings = f.potential_savings
        print(
            f"  {_DIM}{i:>3}.{_RESET} {badge} {_c(f.name, _BOLD)}"
            f"  {_DIM}~{savings.gas_amount:,} gas (${savings.cost_usd:,.2f}){_RESET}"
        )
        if not quiet:
            print(f"       {_DIM}{f.description}{_RESET}")
            for rec in f.recommendations:
                print(f"       → {rec.title} ({rec.difficulty.value}, {rec.estimated_effort})")
        print()

    for warning in result.warnings:
        print(_c(f"  ! {warning}", _YELLOW), file=sys.stderr)


async def _run_analyze(args: argparse.Namespace) -> int:
    """Execute an analysis and print results."""
    from tracegas.pipeline.orchestrator import AnalysisOrchestrator

    if not args.struct_log and not args.call_trace:
        print(_c("Error: provide --struct-log and/or --call-trace.", _RED), file=sys.stderr)
        return EXIT_USAGE

    try:
        struct_log = _load_json(args.struct_log, "steps") if args.struct_log else None
        call_trace = _load_json(args.call_trace, "callData") if args.call_trace else None
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        print(_c(f"Error: {exc}", _RED), file=sys.stderr)
        return EXIT_USAGE

    orchestrator = AnalysisOrchestrator()
    result = await orchestrator.analyze_async(
        struct_log=struct_log,
        call_trace=call_trace,
        pricing=_build_pricing(args),
    )
    if isinstance(result, AnalysisFailure):
        _print_failure(result)
        return EXIT_VALIDATION

    if args.format == "json":
        output = json.dumps(result.model_dump(mode="json", by_alias=True), indent=2)
    else:
        _print_table(result, quiet=args.quiet)
        output = None

    if output:
        if args.output:
            try:
                Path(args.output).write_text(output)
            except OSError as exc:
                print(_c(f"Error: {exc}", _RED), file=sys.stderr)
                return EXIT_USAGE
            if not args.quiet:
                print(f"  Written to {_c(args.output, _CYAN)}", file=sys.stderr)
        else:
            print(output)
    return EXIT_OK


# ── Patterns command ─────────────────────────────────────────────────────────


def _run_patterns() -> int:
    """Print the default optimization pattern table."""
    from tracegas.analyzer.patterns import DEFAULT_PATTERNS

    print(f"\n{_BOLD}Optimization patterns{_RESET}\n")
    for p in DEFAULT_PATTERNS:
        sev_col = _SEV_COLOR.get(p.severity.value, "")
        gate = f"≥{p.gas_threshold:,} gas" if p.gas_threshold else "no gate"
        if p.fallback:
            gate = "only when nothing else fires"
        print(
            f"  {_c(f'{p.severity.value.upper():<8}', sev_col)} {p.id:<28}"
            f" {_DIM}{gate}; up to {p.static_savings:,} gas{_RESET}"
        )
    print()
    return EXIT_OK


# ── Config command ───────────────────────────────────────────────────────────


def _run_config() -> int:
    """Print current settings."""
    from tracegas.core.config import get_settings

    s = get_settings()
    print(f"\n{_BOLD}tracegas Configuration{_RESET}\n")
    for field_name in sorted(type(s).model_fields.keys()):
        val = getattr(s, field_name, "")
        print(f"  {_DIM}{field_name}:{_RESET}  {val}")
    print()
    return EXIT_OK


# ── Entrypoint ───────────────────────────────────────────────────────────────


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return EXIT_USAGE if exc.code else EXIT_OK

    if args.version:
        print(f"tracegas {__version__}")
        return EXIT_OK

    from tracegas.core.config import get_settings
    from tracegas.core.logging import setup_logging

    setup_logging(
        env=get_settings().app_env,
        log_level="DEBUG" if args.verbose else "ERROR",
    )

    if not args.no_banner and not args.quiet:
        print(BANNER, file=sys.stderr)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    if args.command == "config":
        return _run_config()
    if args.command == "patterns":
        return _run_patterns()
    if args.command == "analyze":
        return asyncio.run(_run_analyze(args))

    parser.print_help()
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
