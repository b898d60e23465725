from __future__ import annotations

import os
from dataclasses import dataclass

from ledger.currency_conversion import DEFAULT_PLACES, MAX_PLACES, normalize_currency
from ledger.errors import UnknownCurrency

FALLBACK_CURRENCY = "USD"
DEFAULT_INCOME_TYPES = ("income", "revenue")
DEFAULT_EXPENSE_TYPES = ("expense", "payment")
DEFAULT_DATABASE_URL = "sqlite:///./ledger.db"


@dataclass(frozen=True)
class LedgerSettings:
    default_currency: str = FALLBACK_CURRENCY
    decimal_places: int = DEFAULT_PLACES
    income_types: tuple[str, ...] = DEFAULT_INCOME_TYPES
    expense_types: tuple[str, ...] = DEFAULT_EXPENSE_TYPES
    database_url: str = DEFAULT_DATABASE_URL


def load_settings() -> LedgerSettings:
    return LedgerSettings(
        default_currency=get_default_currency(),
        decimal_places=_read_places("LEDGER_DECIMAL_PLACES"),
        income_types=_read_types("LEDGER_INCOME_TYPES", DEFAULT_INCOME_TYPES),
        expense_types=_read_types("LEDGER_EXPENSE_TYPES", DEFAULT_EXPENSE_TYPES),
        database_url=os.getenv("LEDGER_DATABASE_URL", DEFAULT_DATABASE_URL),
    )


def get_default_currency() -> str:
    raw = os.getenv("LEDGER_DEFAULT_CURRENCY", FALLBACK_CURRENCY)
    try:
        return normalize_currency(raw)
    except UnknownCurrency:
        return FALLBACK_CURRENCY


def _read_places(name: str) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return DEFAULT_PLACES
    try:
        places = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc
    if not 0 <= places <= MAX_PLACES:
        raise ValueError(f"{name} must be between 0 and {MAX_PLACES}.")
    return places


def _read_types(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    types = tuple(part.strip().lower() for part in raw.split(",") if part.strip())
    return types or default
