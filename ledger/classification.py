from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from ledger.config import DEFAULT_EXPENSE_TYPES, DEFAULT_INCOME_TYPES, LedgerSettings
from ledger.records import Transaction


def _normalize_type(value: str) -> str:
    return value.strip().lower()


class Kind(str, enum.Enum):
    """How a transaction takes part in balance aggregation."""

    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"
    OTHER = "other"


@dataclass(frozen=True)
class TypeTable:
    """Membership of transaction types in the income and expense groups."""

    income_types: frozenset[str] = frozenset(DEFAULT_INCOME_TYPES)
    expense_types: frozenset[str] = frozenset(DEFAULT_EXPENSE_TYPES)

    def __post_init__(self) -> None:
        income = frozenset(_normalize_type(value) for value in self.income_types)
        expense = frozenset(_normalize_type(value) for value in self.expense_types)
        overlap = income & expense
        if overlap:
            raise ValueError(
                f"Transaction types cannot be both income and expense: {sorted(overlap)}"
            )
        object.__setattr__(self, "income_types", income)
        object.__setattr__(self, "expense_types", expense)

    @classmethod
    def from_settings(cls, settings: LedgerSettings) -> "TypeTable":
        return cls(
            income_types=frozenset(settings.income_types),
            expense_types=frozenset(settings.expense_types),
        )


DEFAULT_TYPE_TABLE = TypeTable()


def classify(
    transaction: Transaction,
    transfer_category_id: Optional[int],
    type_table: TypeTable = DEFAULT_TYPE_TABLE,
) -> Kind:
    """Tag a transaction as income, expense, transfer or other.

    The transfer category wins over the declared type. Types missing from
    both groups of ``type_table`` classify as ``Kind.OTHER`` rather than
    failing, so new transaction kinds never break balance computation.
    """
    if is_transfer(transaction, transfer_category_id):
        return Kind.TRANSFER
    return classify_type(transaction.type, type_table)


def classify_type(transaction_type: str, type_table: TypeTable = DEFAULT_TYPE_TABLE) -> Kind:
    normalized = _normalize_type(transaction_type)
    if normalized in type_table.income_types:
        return Kind.INCOME
    if normalized in type_table.expense_types:
        return Kind.EXPENSE
    return Kind.OTHER


def is_transfer(transaction: Transaction, transfer_category_id: Optional[int]) -> bool:
    return transfer_category_id is not None and transaction.category_id == transfer_category_id


def is_income(
    transaction: Transaction,
    transfer_category_id: Optional[int],
    type_table: TypeTable = DEFAULT_TYPE_TABLE,
) -> bool:
    return classify(transaction, transfer_category_id, type_table) is Kind.INCOME


def is_expense(
    transaction: Transaction,
    transfer_category_id: Optional[int],
    type_table: TypeTable = DEFAULT_TYPE_TABLE,
) -> bool:
    return classify(transaction, transfer_category_id, type_table) is Kind.EXPENSE


def partition(
    transactions: Iterable[Transaction],
    transfer_category_id: Optional[int],
    type_table: TypeTable = DEFAULT_TYPE_TABLE,
) -> dict[Kind, list[Transaction]]:
    groups: dict[Kind, list[Transaction]] = {kind: [] for kind in Kind}
    for txn in transactions:
        groups[classify(txn, transfer_category_id, type_table)].append(txn)
    return groups
