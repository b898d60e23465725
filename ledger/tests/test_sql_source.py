import os
import unittest
from datetime import datetime
from decimal import Decimal
from unittest import mock

from sqlalchemy import insert

from ledger.balance_engine import BalanceEngine
from ledger.config import LedgerSettings
from ledger.sql_source import (
    accounts,
    categories,
    create_ledger_engine,
    create_tables,
    currencies,
    load_ledger_snapshot,
    transactions,
)


def _insert_rows(conn, table, rows) -> None:
    for row in rows:
        conn.execute(insert(table).values(**row))


class SqlSourceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.engine = create_ledger_engine(LedgerSettings(database_url="sqlite://"))
        create_tables(self.engine)
        with self.engine.begin() as conn:
            _insert_rows(
                conn,
                accounts,
                [
                    {"id": 1, "company_id": 1, "name": "Cash", "number": "001",
                     "currency_code": "USD", "opening_balance": Decimal("1000.00")},
                    {"id": 2, "company_id": 2, "name": "Other company", "number": "001",
                     "currency_code": "USD", "opening_balance": Decimal("5.00")},
                    {"id": 3, "company_id": 1, "name": "Closed", "number": "003",
                     "currency_code": "USD", "opening_balance": Decimal("0"),
                     "deleted_at": datetime(2024, 1, 1)},
                ],
            )
            _insert_rows(
                conn,
                categories,
                [
                    {"id": 1, "company_id": 1, "name": "Sales", "type": "income"},
                    {"id": 2, "company_id": 1, "name": "Transfer", "type": "other"},
                ],
            )
            _insert_rows(
                conn,
                currencies,
                [
                    {"company_id": 1, "name": "US Dollar", "code": "USD", "rate": Decimal("1.05")},
                    {"company_id": 1, "name": "Euro", "code": "EUR", "rate": Decimal("1.10")},
                    {"company_id": 1, "name": "Pound", "code": "GBP", "rate": Decimal("0.8"),
                     "enabled": False},
                ],
            )
            _insert_rows(
                conn,
                transactions,
                [
                    {"id": 1, "company_id": 1, "type": "income", "account_id": 1,
                     "paid_at": datetime(2024, 5, 1, 10, 0), "amount": Decimal("500.00"),
                     "currency_code": "USD", "currency_rate": Decimal("1.05"), "category_id": 1},
                    {"id": 2, "company_id": 1, "type": "expense", "account_id": 1,
                     "paid_at": datetime(2024, 5, 2, 10, 0), "amount": Decimal("200.00"),
                     "currency_code": "USD", "currency_rate": Decimal("1.05")},
                    {"id": 3, "company_id": 1, "type": "income", "account_id": 1,
                     "paid_at": datetime(2024, 5, 3, 10, 0), "amount": Decimal("100.00"),
                     "currency_code": "EUR", "currency_rate": Decimal("1.10"),
                     "reconciled": True},
                    {"id": 4, "company_id": 1, "type": "expense", "account_id": 1,
                     "paid_at": datetime(2024, 5, 4, 10, 0), "amount": Decimal("50.00"),
                     "currency_code": "USD", "currency_rate": Decimal("1.05"), "category_id": 2},
                    {"id": 5, "company_id": 1, "type": "expense", "account_id": 1,
                     "paid_at": datetime(2024, 5, 5, 10, 0), "amount": Decimal("999.00"),
                     "currency_code": "USD", "currency_rate": Decimal("1.05"),
                     "deleted_at": datetime(2024, 5, 6)},
                ],
            )

    def tearDown(self) -> None:
        self.engine.dispose()

    def test_reads_company_snapshot(self) -> None:
        with self.engine.connect() as conn:
            snapshot = load_ledger_snapshot(conn, company_id=1)

        self.assertEqual([account.id for account in snapshot.accounts], [1])
        self.assertEqual([txn.id for txn in snapshot.transactions], [1, 2, 3, 4])
        self.assertEqual(snapshot.transfer_category_id, 2)
        self.assertEqual(sorted(snapshot.rate_table), ["EUR", "USD"])
        self.assertTrue(snapshot.transactions[2].reconciled)

    def test_snapshot_feeds_balance_engine(self) -> None:
        with self.engine.connect() as conn:
            snapshot = load_ledger_snapshot(conn, company_id=1)

        engine = BalanceEngine.from_snapshot(snapshot)

        self.assertEqual(engine.balance_of(1), Decimal("1395.45"))
        self.assertEqual([txn.id for txn in engine.transfers()], [4])

    def test_settings_choose_reporting_currency(self) -> None:
        with self.engine.connect() as conn:
            snapshot = load_ledger_snapshot(conn, company_id=1)

        engine = BalanceEngine.from_snapshot(
            snapshot, settings=LedgerSettings(default_currency="EUR")
        )

        self.assertEqual(engine.total_balance(), Decimal("1461.90"))

    def test_engine_url_comes_from_environment(self) -> None:
        with mock.patch.dict(os.environ, {"LEDGER_DATABASE_URL": "sqlite://"}, clear=True):
            engine = create_ledger_engine()

        try:
            self.assertEqual(str(engine.url), "sqlite://")
            create_tables(engine)
            with engine.connect() as conn:
                self.assertEqual(load_ledger_snapshot(conn, company_id=1).accounts, ())
        finally:
            engine.dispose()

    def test_other_company_is_isolated(self) -> None:
        with self.engine.connect() as conn:
            snapshot = load_ledger_snapshot(conn, company_id=2)

        self.assertEqual([account.name for account in snapshot.accounts], ["Other company"])
        self.assertEqual(snapshot.transactions, ())
        self.assertEqual(len(snapshot.rate_table), 0)
        self.assertIsNone(snapshot.transfer_category_id)


if __name__ == "__main__":
    unittest.main()
