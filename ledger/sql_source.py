from __future__ import annotations

import logging

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    and_,
    create_engine,
    select,
)
from sqlalchemy.engine import Connection, Engine

from ledger.config import LedgerSettings, load_settings
from ledger.currency_conversion import RateTable
from ledger.records import Account, Category, Transaction, find_transfer_category
from ledger.snapshot import LedgerSnapshot

logger = logging.getLogger(__name__)

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("number", String(255), nullable=False),
    Column("currency_code", String(3), nullable=False),
    Column("opening_balance", Numeric(15, 4), nullable=False, default=0),
    Column("bank_name", String(255)),
    Column("bank_phone", String(255)),
    Column("bank_address", String(500)),
    Column("enabled", Boolean, nullable=False, default=True),
    Column("deleted_at", DateTime),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("type", String(20), nullable=False),
    Column("color", String(20)),
    Column("enabled", Boolean, nullable=False, default=True),
    Column("deleted_at", DateTime),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_id", Integer, nullable=False, index=True),
    Column("type", String(50), nullable=False),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False),
    Column("paid_at", DateTime, nullable=False),
    Column("amount", Numeric(15, 4), nullable=False),
    Column("currency_code", String(3), nullable=False),
    Column("currency_rate", Numeric(15, 8), nullable=False),
    Column("document_id", Integer),
    Column("description", String(500)),
    Column("category_id", Integer, ForeignKey("categories.id")),
    Column("payment_method", String(255)),
    Column("reference", String(255)),
    Column("parent_id", Integer),
    Column("reconciled", Boolean, nullable=False, default=False),
    Column("deleted_at", DateTime),
)

currencies = Table(
    "currencies",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("company_id", Integer, nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("code", String(3), nullable=False),
    Column("rate", Numeric(15, 8), nullable=False),
    Column("enabled", Boolean, nullable=False, default=True),
    Column("deleted_at", DateTime),
)

ACCOUNT_FIELDS = (
    "id",
    "name",
    "number",
    "currency_code",
    "opening_balance",
    "enabled",
    "bank_name",
    "bank_phone",
    "bank_address",
)
TRANSACTION_FIELDS = (
    "id",
    "account_id",
    "type",
    "amount",
    "currency_code",
    "currency_rate",
    "paid_at",
    "category_id",
    "parent_id",
    "reconciled",
    "document_id",
    "description",
    "reference",
    "payment_method",
)
CATEGORY_FIELDS = ("id", "name", "type", "enabled", "color")


def create_ledger_engine(settings: LedgerSettings | None = None) -> Engine:
    settings = settings or load_settings()
    connect_args = {}
    if settings.database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(settings.database_url, connect_args=connect_args)


def create_tables(engine: Engine) -> None:
    metadata.create_all(engine)


def load_ledger_snapshot(conn: Connection, company_id: int) -> LedgerSnapshot:
    """Read everything the engine needs for ``company_id`` over one connection."""
    account_rows = _fetch(conn, accounts, company_id, order_by=accounts.c.id)
    category_rows = _fetch(conn, categories, company_id, order_by=categories.c.id)
    transaction_rows = _fetch(
        conn, transactions, company_id, order_by=transactions.c.paid_at
    )
    rate_rows = conn.execute(
        select(currencies.c.code, currencies.c.rate).where(
            and_(
                currencies.c.company_id == company_id,
                currencies.c.enabled.is_(True),
                currencies.c.deleted_at.is_(None),
            )
        )
    ).mappings().all()

    loaded_categories = tuple(
        Category(**{name: row[name] for name in CATEGORY_FIELDS}) for row in category_rows
    )
    snapshot = LedgerSnapshot(
        accounts=tuple(
            Account(**{name: row[name] for name in ACCOUNT_FIELDS}) for row in account_rows
        ),
        transactions=tuple(
            Transaction(**{name: row[name] for name in TRANSACTION_FIELDS})
            for row in transaction_rows
        ),
        categories=loaded_categories,
        rate_table=RateTable(rates={row["code"]: row["rate"] for row in rate_rows}),
        transfer_category_id=find_transfer_category(loaded_categories),
    )
    logger.debug(
        "Read snapshot for company %s: %d accounts, %d transactions",
        company_id,
        len(snapshot.accounts),
        len(snapshot.transactions),
    )
    return snapshot


def _fetch(conn: Connection, table: Table, company_id: int, order_by):
    return (
        conn.execute(
            select(table)
            .where(
                and_(
                    table.c.company_id == company_id,
                    table.c.deleted_at.is_(None),
                )
            )
            .order_by(order_by, table.c.id)
        )
        .mappings()
        .all()
    )
