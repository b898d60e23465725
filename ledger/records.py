from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from ledger.currency_conversion import ZERO, coerce_amount, coerce_rate, normalize_currency
from ledger.errors import MalformedAmount

NOT_AVAILABLE = "n/a"
CATEGORY_TYPES = ("income", "expense", "item", "other")
TRANSFER_CATEGORY_TYPE = "other"


@dataclass(frozen=True)
class Account:
    id: int
    name: str
    number: str
    currency_code: str
    opening_balance: Decimal = ZERO
    enabled: bool = True
    bank_name: Optional[str] = None
    bank_phone: Optional[str] = None
    bank_address: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "currency_code", normalize_currency(self.currency_code))
        object.__setattr__(self, "opening_balance", coerce_amount(self.opening_balance))


@dataclass(frozen=True)
class Transaction:
    """A single ledger line.

    ``amount`` is always positive; whether it adds to or subtracts from the
    account balance is decided by classification of ``type`` and
    ``category_id``. ``currency_rate`` is the rate of ``currency_code`` at
    the time the transaction was recorded.
    """

    id: int
    account_id: int
    type: str
    amount: Decimal
    currency_code: str
    paid_at: datetime
    currency_rate: Decimal = Decimal("1")
    category_id: Optional[int] = None
    parent_id: Optional[int] = None
    reconciled: bool = False
    document_id: Optional[int] = None
    description: Optional[str] = None
    reference: Optional[str] = None
    payment_method: Optional[str] = None

    def __post_init__(self) -> None:
        amount = coerce_amount(self.amount)
        if amount <= ZERO:
            raise MalformedAmount(f"Transaction amount must be positive: {self.amount!r}")
        object.__setattr__(self, "amount", amount)
        object.__setattr__(self, "currency_code", normalize_currency(self.currency_code))
        object.__setattr__(self, "currency_rate", coerce_rate(self.currency_rate))
        object.__setattr__(self, "paid_at", _coerce_datetime(self.paid_at))

    @property
    def is_document(self) -> bool:
        return self.document_id is not None

    @property
    def is_recurring_instance(self) -> bool:
        return self.parent_id is not None


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    type: str
    enabled: bool = True
    color: Optional[str] = None

    def __post_init__(self) -> None:
        normalized = self.type.strip().lower()
        if normalized not in CATEGORY_TYPES:
            raise ValueError(f"Unsupported category type: {self.type}")
        object.__setattr__(self, "type", normalized)


class _Named(Protocol):
    name: str


def display_name(record: Optional[_Named], default: str = NOT_AVAILABLE) -> str:
    """Name of an optional related record, or the placeholder when it is missing."""
    if record is None or not record.name:
        return default
    return record.name


def find_transfer_category(categories: Iterable[Category]) -> Optional[int]:
    """Return the id of the category that marks transfers between accounts.

    The first category of type ``other`` (lowest id) plays that role.
    """
    candidates = [
        category.id for category in categories if category.type == TRANSFER_CATEGORY_TYPE
    ]
    if not candidates:
        return None
    return min(candidates)


def naive_utc(value: datetime) -> datetime:
    """Offset-aware datetimes are shifted to UTC and stored without tzinfo."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _coerce_datetime(value: datetime | date | str) -> datetime:
    if isinstance(value, datetime):
        return naive_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            return naive_utc(datetime.fromisoformat(text))
        except ValueError as exc:
            raise ValueError("paid_at must be an ISO 8601 date or datetime.") from exc
    raise ValueError("paid_at must be a date or datetime.")
