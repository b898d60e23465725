from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from ledger.currency_conversion import RateTable
from ledger.records import Account, Category, Transaction, find_transfer_category

logger = logging.getLogger(__name__)


class AccountPayload(BaseModel):
    id: int
    name: str
    number: str
    currency_code: str
    opening_balance: Decimal = Decimal("0")
    enabled: bool = True
    bank_name: str | None = None
    bank_phone: str | None = None
    bank_address: str | None = None


class TransactionPayload(BaseModel):
    id: int
    account_id: int
    type: str
    amount: Decimal
    currency_code: str
    currency_rate: Decimal = Decimal("1")
    paid_at: datetime
    category_id: int | None = None
    parent_id: int | None = None
    reconciled: bool = False
    document_id: int | None = None
    description: str | None = None
    reference: str | None = None
    payment_method: str | None = None


class CategoryPayload(BaseModel):
    id: int
    name: str
    type: str
    enabled: bool = True
    color: str | None = None


class SnapshotPayload(BaseModel):
    accounts: list[AccountPayload] = []
    transactions: list[TransactionPayload] = []
    categories: list[CategoryPayload] = []
    rates: dict[str, Decimal] | None = None
    transfer_category_id: int | None = None


@dataclass(frozen=True)
class LedgerSnapshot:
    accounts: tuple[Account, ...]
    transactions: tuple[Transaction, ...]
    categories: tuple[Category, ...]
    rate_table: RateTable
    transfer_category_id: Optional[int] = None


def load_snapshot(payload: Mapping[str, Any]) -> LedgerSnapshot:
    """Validate a plain snapshot mapping and build ledger records from it.

    ``rates`` falls back to the built-in table when omitted, and the transfer
    category is looked up among ``categories`` when not given explicitly.
    """
    parsed = SnapshotPayload.model_validate(payload)
    return _build_snapshot(parsed)


def load_snapshot_json(raw: str | bytes) -> LedgerSnapshot:
    parsed = SnapshotPayload.model_validate_json(raw)
    return _build_snapshot(parsed)


def _build_snapshot(parsed: SnapshotPayload) -> LedgerSnapshot:
    categories = tuple(Category(**item.model_dump()) for item in parsed.categories)
    transfer_category_id = parsed.transfer_category_id
    if transfer_category_id is None:
        transfer_category_id = find_transfer_category(categories)

    snapshot = LedgerSnapshot(
        accounts=tuple(Account(**item.model_dump()) for item in parsed.accounts),
        transactions=tuple(Transaction(**item.model_dump()) for item in parsed.transactions),
        categories=categories,
        rate_table=RateTable(rates=parsed.rates),
        transfer_category_id=transfer_category_id,
    )
    logger.debug(
        "Loaded snapshot: %d accounts, %d transactions, %d categories",
        len(snapshot.accounts),
        len(snapshot.transactions),
        len(snapshot.categories),
    )
    return snapshot
