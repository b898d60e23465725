import unittest
from decimal import Decimal

from ledger.currency_conversion import (
    CurrencyConverter,
    RateTable,
    convert_amount,
    convert_with_table,
    normalize_currency,
)
from ledger.errors import InvalidRate, MalformedAmount, UnknownCurrency


class CurrencyConversionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.table = RateTable(
            rates={
                "USD": Decimal("1"),
                "EUR": Decimal("2"),
                "JPY": Decimal("4"),
            }
        )

    def test_same_currency_returns_original_amount(self) -> None:
        amount = convert_amount(Decimal("12.345"), "USD", "1.7", "usd", "1.7")

        self.assertEqual(amount, Decimal("12.345"))

    def test_converts_through_base_rate_and_rounds_half_up(self) -> None:
        amount = convert_amount(Decimal("100.00"), "EUR", "1.10", "USD", "1.05")

        self.assertEqual(amount, Decimal("95.45"))

    def test_rounds_half_up_on_exact_midpoint(self) -> None:
        amount = convert_amount(Decimal("0.125"), "EUR", "1", "USD", "1", places=2)
        self.assertEqual(amount, Decimal("0.13"))

        amount = convert_amount(Decimal("2.5"), "EUR", "1", "USD", "1", places=0)
        self.assertEqual(amount, Decimal("3"))

    def test_round_trip_stays_within_rounding_tolerance(self) -> None:
        converter = CurrencyConverter(places=4)
        original = Decimal("1234.56")

        there = converter.convert(original, "GBP", "0.79", "JPY", "147.50")
        back = converter.convert(there, "JPY", "147.50", "GBP", "0.79")

        self.assertLessEqual(abs(back - original), Decimal("0.0001"))

    def test_table_conversion_uses_both_rates(self) -> None:
        amount = convert_with_table(Decimal("10"), "EUR", "JPY", self.table)

        self.assertEqual(amount, Decimal("20.00"))

    def test_normalizes_currency_codes(self) -> None:
        amount = convert_with_table(Decimal("6"), " eur ", "jpy", self.table)

        self.assertEqual(amount, Decimal("12.00"))
        self.assertEqual(normalize_currency(" gbp"), "GBP")

    def test_zero_or_negative_rate_raises(self) -> None:
        with self.assertRaises(InvalidRate):
            convert_amount(Decimal("5"), "EUR", "0", "USD", "1")
        with self.assertRaises(InvalidRate):
            convert_amount(Decimal("5"), "EUR", "1", "USD", "-1.2")
        with self.assertRaises(InvalidRate):
            RateTable(rates={"USD": Decimal("0")})

    def test_missing_currency_raises(self) -> None:
        with self.assertRaises(UnknownCurrency):
            self.table.get_rate("CAD")
        with self.assertRaises(UnknownCurrency):
            convert_with_table(Decimal("5"), "USD", "CAD", self.table)

    def test_malformed_currency_code_raises(self) -> None:
        with self.assertRaises(UnknownCurrency):
            normalize_currency("EURO")

    def test_non_numeric_amount_raises(self) -> None:
        with self.assertRaises(MalformedAmount):
            convert_amount("ten", "EUR", "1", "USD", "1")
        with self.assertRaises(MalformedAmount):
            convert_amount(Decimal("NaN"), "EUR", "1", "USD", "1")

    def test_amount_too_large_to_round_raises(self) -> None:
        with self.assertRaises(MalformedAmount):
            convert_amount(Decimal("1e27"), "EUR", "1", "USD", "1")

    def test_default_table_uses_usd_base(self) -> None:
        table = RateTable()

        self.assertEqual(table.get_rate("usd"), Decimal("1"))
        self.assertIn("EUR", table)
        self.assertNotIn("XYZ", table)

    def test_places_must_be_in_range(self) -> None:
        with self.assertRaises(ValueError):
            CurrencyConverter(places=9)


if __name__ == "__main__":
    unittest.main()
