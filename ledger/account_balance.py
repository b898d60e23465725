from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from ledger.classification import DEFAULT_TYPE_TABLE, Kind, TypeTable, classify, classify_type
from ledger.currency_conversion import ZERO, CurrencyConverter, RateTable, coerce_amount, normalize_currency
from ledger.records import Account, Transaction

logger = logging.getLogger(__name__)

DEFAULT_CONVERTER = CurrencyConverter()


@dataclass(frozen=True)
class BalanceSummary:
    opening_balance: Decimal
    income: Decimal
    expense: Decimal
    balance: Decimal
    transfers: int = 0
    skipped: int = 0


def amount_for_account(
    transaction: Transaction,
    account_currency: str,
    rate_table: RateTable,
    converter: CurrencyConverter = DEFAULT_CONVERTER,
) -> Decimal:
    """Return the transaction amount expressed in the account's currency.

    The transaction's own recorded rate is used on the source side and the
    account currency's current rate from ``rate_table`` on the target side.
    """
    target = normalize_currency(account_currency)
    if transaction.currency_code == target:
        return transaction.amount
    return converter.convert(
        transaction.amount,
        transaction.currency_code,
        transaction.currency_rate,
        target,
        rate_table.get_rate(target),
    )


def summarize_balance(
    opening_balance: Decimal | int | str,
    transactions: Iterable[Transaction],
    account_currency: str,
    rate_table: RateTable,
    transfer_category_id: Optional[int] = None,
    type_table: TypeTable = DEFAULT_TYPE_TABLE,
    *,
    converter: CurrencyConverter = DEFAULT_CONVERTER,
    include_transfers: bool = False,
) -> BalanceSummary:
    opening = coerce_amount(opening_balance)
    income = ZERO
    expense = ZERO
    transfers = 0
    skipped = 0

    for txn in transactions:
        kind = classify(txn, transfer_category_id, type_table)
        if kind is Kind.TRANSFER:
            transfers += 1
            if not include_transfers:
                continue
            # a transfer leg moves money in the direction of its declared type
            kind = classify_type(txn.type, type_table)

        if kind is Kind.INCOME:
            income += amount_for_account(txn, account_currency, rate_table, converter)
        elif kind is Kind.EXPENSE:
            expense += amount_for_account(txn, account_currency, rate_table, converter)
        else:
            skipped += 1
            logger.warning(
                "Skipping transaction %s of unclassified type %r", txn.id, txn.type
            )

    return BalanceSummary(
        opening_balance=opening,
        income=income,
        expense=expense,
        balance=opening + income - expense,
        transfers=transfers,
        skipped=skipped,
    )


def compute_balance(
    opening_balance: Decimal | int | str,
    transactions: Iterable[Transaction],
    account_currency: str,
    rate_table: RateTable,
    transfer_category_id: Optional[int] = None,
    type_table: TypeTable = DEFAULT_TYPE_TABLE,
    *,
    converter: CurrencyConverter = DEFAULT_CONVERTER,
    include_transfers: bool = False,
) -> Decimal:
    """Derive the current balance from the opening balance and the ledger.

    ``opening + sum(income) - sum(expense)``, with amounts normalized into
    ``account_currency``. Transfer-category and unclassified transactions are
    left out of both sums. With no transactions the opening balance is
    returned exactly as given.
    """
    return summarize_balance(
        opening_balance,
        transactions,
        account_currency,
        rate_table,
        transfer_category_id,
        type_table,
        converter=converter,
        include_transfers=include_transfers,
    ).balance


@dataclass(frozen=True)
class LedgerAccount:
    account: Account
    rate_table: RateTable = field(default_factory=RateTable)
    transfer_category_id: Optional[int] = None
    type_table: TypeTable = DEFAULT_TYPE_TABLE
    converter: CurrencyConverter = DEFAULT_CONVERTER
    include_transfers: bool = False

    def transactions(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        return [txn for txn in transactions if txn.account_id == self.account.id]

    def income_transactions(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        return self._of_kind(transactions, Kind.INCOME)

    def expense_transactions(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        return self._of_kind(transactions, Kind.EXPENSE)

    def amount_for_account(self, transaction: Transaction) -> Decimal:
        return amount_for_account(
            transaction, self.account.currency_code, self.rate_table, self.converter
        )

    def summary(self, transactions: Iterable[Transaction]) -> BalanceSummary:
        own = self.transactions(transactions)
        summary = summarize_balance(
            self.account.opening_balance,
            own,
            self.account.currency_code,
            self.rate_table,
            self.transfer_category_id,
            self.type_table,
            converter=self.converter,
            include_transfers=self.include_transfers,
        )
        logger.debug(
            "Account %s: %d transactions, balance %s %s",
            self.account.id,
            len(own),
            summary.balance,
            self.account.currency_code,
        )
        return summary

    def balance(self, transactions: Iterable[Transaction]) -> Decimal:
        return self.summary(transactions).balance

    def _of_kind(self, transactions: Iterable[Transaction], kind: Kind) -> List[Transaction]:
        return [
            txn
            for txn in self.transactions(transactions)
            if classify(txn, self.transfer_category_id, self.type_table) is kind
        ]
