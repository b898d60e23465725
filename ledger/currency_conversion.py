from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterator, Mapping

from ledger.errors import InvalidRate, MalformedAmount, UnknownCurrency

DEFAULT_PLACES = 2
MAX_PLACES = 8
ROUNDING = ROUND_HALF_UP
ZERO = Decimal("0")

DEFAULT_RATES: dict[str, Decimal] = {
    "USD": Decimal("1"),
    "EUR": Decimal("0.92"),
    "GBP": Decimal("0.79"),
    "JPY": Decimal("147.50"),
    "CAD": Decimal("1.34"),
    "AUD": Decimal("1.52"),
    "NZD": Decimal("1.64"),
    "CHF": Decimal("0.88"),
    "SEK": Decimal("10.45"),
}


@dataclass(frozen=True)
class RateTable:
    """Snapshot of currency rates.

    Rates are expressed as units of the currency per 1 unit of a fixed base
    currency. The table is read-only once built; callers take a new snapshot
    to pick up new rates.
    """

    rates: Mapping[str, Decimal] = None

    def __post_init__(self) -> None:
        source = DEFAULT_RATES if self.rates is None else self.rates
        normalized = {
            normalize_currency(code): coerce_rate(rate) for code, rate in source.items()
        }
        object.__setattr__(self, "rates", normalized)

    def get_rate(self, currency: str) -> Decimal:
        normalized = normalize_currency(currency)
        try:
            return self.rates[normalized]
        except KeyError as exc:
            raise UnknownCurrency(f"No rate for currency: {normalized}") from exc

    def __contains__(self, currency: object) -> bool:
        if not isinstance(currency, str):
            return False
        try:
            return normalize_currency(currency) in self.rates
        except UnknownCurrency:
            return False

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self.rates))

    def __len__(self) -> int:
        return len(self.rates)


@dataclass(frozen=True)
class CurrencyConverter:
    """Converts amounts between currencies through the rates' common base.

    Converted results are rounded half-up to ``places`` fractional digits;
    amounts that stay in their own currency are returned untouched.
    """

    places: int = DEFAULT_PLACES

    def __post_init__(self) -> None:
        if isinstance(self.places, bool) or not isinstance(self.places, int):
            raise ValueError("places must be an integer.")
        if not 0 <= self.places <= MAX_PLACES:
            raise ValueError(f"places must be between 0 and {MAX_PLACES}.")

    def convert(
        self,
        amount: Decimal | int | float | str,
        from_code: str,
        from_rate: Decimal | int | float | str,
        to_code: str,
        to_rate: Decimal | int | float | str,
    ) -> Decimal:
        coerced_amount = coerce_amount(amount)
        if normalize_currency(from_code) == normalize_currency(to_code):
            return coerced_amount

        source_rate = coerce_rate(from_rate)
        target_rate = coerce_rate(to_rate)
        try:
            return self.quantize(coerced_amount / source_rate * target_rate)
        except InvalidOperation as exc:
            raise MalformedAmount(
                f"Amount cannot be converted at {self.places} places: {amount!r}"
            ) from exc

    def convert_with_table(
        self,
        amount: Decimal | int | float | str,
        from_code: str,
        to_code: str,
        table: RateTable,
    ) -> Decimal:
        if normalize_currency(from_code) == normalize_currency(to_code):
            return coerce_amount(amount)
        return self.convert(
            amount,
            from_code,
            table.get_rate(from_code),
            to_code,
            table.get_rate(to_code),
        )

    def quantize(self, value: Decimal) -> Decimal:
        return value.quantize(Decimal(1).scaleb(-self.places), rounding=ROUNDING)


def convert_amount(
    amount: Decimal | int | float | str,
    from_code: str,
    from_rate: Decimal | int | float | str,
    to_code: str,
    to_rate: Decimal | int | float | str,
    places: int = DEFAULT_PLACES,
) -> Decimal:
    """Convert a monetary amount using caller-supplied rates."""
    return CurrencyConverter(places=places).convert(
        amount, from_code, from_rate, to_code, to_rate
    )


def convert_with_table(
    amount: Decimal | int | float | str,
    from_code: str,
    to_code: str,
    table: RateTable,
    places: int = DEFAULT_PLACES,
) -> Decimal:
    return CurrencyConverter(places=places).convert_with_table(
        amount, from_code, to_code, table
    )


def normalize_currency(value: str) -> str:
    if not isinstance(value, str):
        raise UnknownCurrency("Currency must be a 3-letter ISO 4217 code.")
    normalized = value.strip().upper()
    if len(normalized) != 3 or not normalized.isalpha():
        raise UnknownCurrency("Currency must be a 3-letter ISO 4217 code.")
    return normalized


def coerce_amount(
    amount: Decimal | int | float | str, allow_negative: bool = True
) -> Decimal:
    value = _to_decimal(amount)
    if value is None or not value.is_finite():
        raise MalformedAmount(f"Amount is not a number: {amount!r}")
    if not allow_negative and value < ZERO:
        raise MalformedAmount(f"Amount must not be negative: {amount!r}")
    return value


def coerce_rate(rate: Decimal | int | float | str) -> Decimal:
    value = _to_decimal(rate)
    if value is None or not value.is_finite():
        raise InvalidRate(f"Rate is not a number: {rate!r}")
    if value <= ZERO:
        raise InvalidRate(f"Rate must be greater than zero: {rate!r}")
    return value


def _to_decimal(value: object) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if not isinstance(value, (int, float, str)):
        return None
    try:
        return Decimal(str(value).strip())
    except InvalidOperation:
        return None
