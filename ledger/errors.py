from __future__ import annotations


class LedgerError(ValueError):
    """Base class for failures reported by the ledger engine."""


class InvalidRate(LedgerError):
    """Raised when a conversion rate is zero, negative or not a number."""


class UnknownCurrency(LedgerError):
    """Raised when a currency code is malformed or missing from a rate table."""


class MalformedAmount(LedgerError):
    """Raised when an amount is non-numeric or negative where it must not be."""
