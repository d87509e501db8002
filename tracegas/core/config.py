"""Core configuration for the tracegas engine."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="TRACEGAS_",
        case_sensitive=False,
    )

    # ── App ──────────────────────────────────────────────────────────────
    app_name: str = "tracegas"
    app_env: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    cors_allowed_origins: str = "http://localhost:3000,http://localhost:5173"

    # ── Pricing ──────────────────────────────────────────────────────────
    # Defaults only; callers inject live pricing per analysis.
    gas_price_gwei: float = Field(default=20.0, ge=0)
    native_usd_price: float = Field(default=2500.0, ge=0)
    cost_top_n: int = Field(default=5, ge=1)

    # ── Trace limits ─────────────────────────────────────────────────────
    large_struct_log_warning: int = 10_000
    large_call_trace_warning: int = 1_000
    max_trace_steps: int = 500_000
    max_trace_calls: int = 200_000

    # ── Pipeline ─────────────────────────────────────────────────────────
    concurrent_aggregation: bool = True


@lru_cache
def get_settings() -> Settings:
    """Return cached settings singleton."""
    return Settings()
