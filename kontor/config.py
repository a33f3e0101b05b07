"""Application configuration using pydantic-settings."""
from __future__ import annotations

from typing import Dict

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Configuration values for the bookkeeping core."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="KONTOR_")

    vat_accounts: Dict[str, Dict[str, str]] = Field(
        default_factory=lambda: {
            "output": {"19": "1776", "7": "1771"},
            "input": {"19": "1576", "7": "1571"},
        },
        description="VAT account code per direction and rate (SKR03 by default).",
    )
    vat_fallback_prefixes: Dict[str, str] = Field(
        default_factory=lambda: {"output": "177", "input": "157"},
    )
    default_revenue_account_code: str = Field(default="8400")
    default_expense_account_code: str = Field(default="3400")
    reversal_prefix: str = Field(default="Storno: ")
    number_prefixes: Dict[str, str] = Field(
        default_factory=lambda: {
            "quote": "AN",
            "order": "AB",
            "invoice": "RE",
            "receipt": "BEL",
        },
    )
    payment_terms_days: int = Field(default=14, ge=0)
    default_unit: str = Field(default="Stück")
    debtor_account_base: int = Field(default=10000)
    creditor_account_base: int = Field(default=70000)
    seed_chart: bool = Field(
        default=True,
        description="Seed new in-memory tenants with the SKR03 default accounts.",
    )

    @field_validator("vat_accounts")
    @classmethod
    def _known_directions(cls, value: Dict[str, Dict[str, str]]) -> Dict[str, Dict[str, str]]:
        unknown = set(value) - {"output", "input"}
        if unknown:
            raise ValueError(f"Unknown VAT directions: {sorted(unknown)}")
        return value


_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Return a cached instance of the application settings."""

    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


__all__ = ["AppSettings", "get_settings"]
