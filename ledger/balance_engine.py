from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ledger.account_balance import DEFAULT_CONVERTER, LedgerAccount, amount_for_account
from ledger.classification import DEFAULT_TYPE_TABLE, Kind, TypeTable, classify, is_transfer
from ledger.config import FALLBACK_CURRENCY, LedgerSettings
from ledger.currency_conversion import ZERO, CurrencyConverter, RateTable, normalize_currency
from ledger.records import Account, Category, Transaction, naive_utc
from ledger.snapshot import LedgerSnapshot

logger = logging.getLogger(__name__)

AccountRef = Union[Account, int]


@dataclass(frozen=True)
class BalanceEngine:
    accounts: Sequence[Account] = ()
    transactions: Sequence[Transaction] = ()
    categories: Sequence[Category] = ()
    rate_table: RateTable = field(default_factory=RateTable)
    transfer_category_id: Optional[int] = None
    type_table: TypeTable = DEFAULT_TYPE_TABLE
    converter: CurrencyConverter = DEFAULT_CONVERTER
    include_transfers: bool = False
    default_currency: str = FALLBACK_CURRENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "accounts", tuple(self.accounts))
        object.__setattr__(self, "transactions", tuple(self.transactions))
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "default_currency", normalize_currency(self.default_currency))
        known = {account.id for account in self.accounts}
        for txn in self.transactions:
            if txn.account_id not in known:
                logger.warning(
                    "Transaction %s refers to unknown account %s", txn.id, txn.account_id
                )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: LedgerSnapshot,
        settings: Optional[LedgerSettings] = None,
        **options,
    ) -> "BalanceEngine":
        if settings is not None:
            options.setdefault("type_table", TypeTable.from_settings(settings))
            options.setdefault("converter", CurrencyConverter(places=settings.decimal_places))
            options.setdefault("default_currency", settings.default_currency)
        return cls(
            accounts=snapshot.accounts,
            transactions=snapshot.transactions,
            categories=snapshot.categories,
            rate_table=snapshot.rate_table,
            transfer_category_id=snapshot.transfer_category_id,
            **options,
        )

    # accounts

    def account(self, ref: AccountRef) -> Account:
        account_id = ref.id if isinstance(ref, Account) else ref
        for account in self.accounts:
            if account.id == account_id:
                return account
        raise KeyError(f"Unknown account: {account_id}")

    def by_name(self, name: str) -> List[Account]:
        return [account for account in self.accounts if account.name == name]

    def by_number(self, number: str) -> List[Account]:
        return [account for account in self.accounts if account.number == number]

    def enabled_accounts(self) -> List[Account]:
        return [account for account in self.accounts if account.enabled]

    # categories

    def categories_of_type(self, category_type: str) -> List[Category]:
        normalized = category_type.strip().lower()
        return [category for category in self.categories if category.type == normalized]

    def category_for(self, transaction: Transaction) -> Optional[Category]:
        if transaction.category_id is None:
            return None
        for category in self.categories:
            if category.id == transaction.category_id:
                return category
        return None

    # transactions

    def transactions_of(self, ref: AccountRef) -> List[Transaction]:
        account = self.account(ref)
        return [txn for txn in self.transactions if txn.account_id == account.id]

    def income_of(self, ref: AccountRef) -> List[Transaction]:
        return self._of_kind(self.transactions_of(ref), Kind.INCOME)

    def expense_of(self, ref: AccountRef) -> List[Transaction]:
        return self._of_kind(self.transactions_of(ref), Kind.EXPENSE)

    def by_type(self, types: Union[str, Iterable[str], None]) -> List[Transaction]:
        if not types:
            return list(self.transactions)
        if isinstance(types, str):
            types = [types]
        wanted = {value.strip().lower() for value in types}
        return [txn for txn in self.transactions if txn.type.strip().lower() in wanted]

    def transfers(self) -> List[Transaction]:
        return [
            txn for txn in self.transactions if is_transfer(txn, self.transfer_category_id)
        ]

    def non_transfers(self) -> List[Transaction]:
        return [
            txn
            for txn in self.transactions
            if not is_transfer(txn, self.transfer_category_id)
        ]

    def is_reconciled(self, flag: bool = True) -> List[Transaction]:
        return [txn for txn in self.transactions if txn.reconciled == flag]

    def documents(self) -> List[Transaction]:
        return [txn for txn in self.transactions if txn.is_document]

    def non_documents(self) -> List[Transaction]:
        return [txn for txn in self.transactions if not txn.is_document]

    def by_document(self, document_id: int) -> List[Transaction]:
        return [txn for txn in self.transactions if txn.document_id == document_id]

    def between(
        self, start: Union[date, datetime], end: Union[date, datetime]
    ) -> List[Transaction]:
        """Transactions paid inside ``[start, end]``; plain dates cover whole days."""
        lower = _as_datetime(start, time.min)
        upper = _as_datetime(end, time.max)
        if lower > upper:
            raise ValueError("start must be on or before end.")
        return [txn for txn in self.transactions if lower <= txn.paid_at <= upper]

    def latest(self, transactions: Optional[Iterable[Transaction]] = None) -> List[Transaction]:
        source = self.transactions if transactions is None else transactions
        return sorted(source, key=lambda txn: txn.paid_at, reverse=True)

    def sum_paid(
        self,
        transactions: Optional[Iterable[Transaction]] = None,
        currency: Optional[str] = None,
    ) -> Decimal:
        """Total of transaction amounts.

        Without ``currency`` the stored amounts are added as they are; with
        it, each amount is first normalized into that currency the same way
        an account balance does it, from the transaction's recorded rate.
        """
        source = self.transactions if transactions is None else transactions
        total = ZERO
        for txn in source:
            if currency is None:
                total += txn.amount
            else:
                total += amount_for_account(txn, currency, self.rate_table, self.converter)
        return total

    # balances

    def ledger_account(self, ref: AccountRef) -> LedgerAccount:
        return LedgerAccount(
            account=self.account(ref),
            rate_table=self.rate_table,
            transfer_category_id=self.transfer_category_id,
            type_table=self.type_table,
            converter=self.converter,
            include_transfers=self.include_transfers,
        )

    def balance_of(self, ref: AccountRef) -> Decimal:
        return self.ledger_account(ref).balance(self.transactions)

    def balances(self) -> Dict[int, Decimal]:
        return {account.id: self.balance_of(account) for account in self.accounts}

    def total_balance(self, currency: Optional[str] = None) -> Decimal:
        """Sum of enabled account balances, each converted into ``currency``.

        ``currency`` defaults to the engine's ``default_currency``.
        """
        target = normalize_currency(currency or self.default_currency)
        total = ZERO
        for account in self.enabled_accounts():
            total += self.converter.convert_with_table(
                self.balance_of(account), account.currency_code, target, self.rate_table
            )
        return total

    def _of_kind(self, transactions: Iterable[Transaction], kind: Kind) -> List[Transaction]:
        return [
            txn
            for txn in transactions
            if classify(txn, self.transfer_category_id, self.type_table) is kind
        ]


def _as_datetime(value: Union[date, datetime], bound: time) -> datetime:
    if isinstance(value, datetime):
        return naive_utc(value)
    return datetime.combine(value, bound)
