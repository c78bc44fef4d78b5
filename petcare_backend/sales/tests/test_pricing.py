from decimal import Decimal

from django.test import SimpleTestCase

from sales.services.pricing import (
    calculate_change,
    parse_decimal,
    price_product_line,
    price_service_line,
    sum_sale_totals,
)


class ParseDecimalTests(SimpleTestCase):
    """
    GUARANTEES:
    - Locale-formatted amounts are understood
    - Malformed input becomes zero instead of raising
    """

    def test_last_separator_is_decimal(self):
        self.assertEqual(parse_decimal("1.234.567,89"), Decimal("1234567.89"))
        self.assertEqual(parse_decimal("1,234,567.89"), Decimal("1234567.89"))

    def test_single_separator_is_always_decimal(self):
        self.assertEqual(parse_decimal("1.500"), Decimal("1.5"))
        self.assertEqual(parse_decimal("2,000"), Decimal("2"))
        self.assertEqual(parse_decimal("12,345"), Decimal("12.345"))

    def test_grouped_amount_needs_decimal_part(self):
        self.assertEqual(parse_decimal("1.500,00"), Decimal("1500.00"))
        self.assertEqual(parse_decimal("7.500.00"), Decimal("7500.00"))

    def test_decimal_comma_and_point(self):
        self.assertEqual(parse_decimal("7,5"), Decimal("7.5"))
        self.assertEqual(parse_decimal("0.125"), Decimal("0.125"))
        self.assertEqual(parse_decimal("-3,5"), Decimal("-3.5"))

    def test_currency_symbols_and_spaces_are_ignored(self):
        self.assertEqual(parse_decimal("$ 15.000,50"), Decimal("15000.50"))

    def test_native_numbers_pass_through(self):
        self.assertEqual(parse_decimal(12), Decimal("12"))
        self.assertEqual(parse_decimal(2.5), Decimal("2.5"))
        self.assertEqual(parse_decimal(Decimal("3.10")), Decimal("3.10"))

    def test_malformed_input_is_zero(self):
        for value in (None, "", "abc", "12a", True, [], "NaN"):
            with self.subTest(value=value):
                self.assertEqual(parse_decimal(value), Decimal("0"))


class LinePricingTests(SimpleTestCase):
    def test_taxed_product_line(self):
        price = price_product_line(
            unit_price="10000", quantity=3, tax_applicable=True, tax_rate="19"
        )

        self.assertEqual(price.subtotal, Decimal("30000.00"))
        self.assertEqual(price.unit_tax, Decimal("1900.00"))
        self.assertEqual(price.total_with_tax, Decimal("35700.00"))
        self.assertEqual(price.tax_total, Decimal("5700.00"))

    def test_untaxed_product_line_ignores_rate(self):
        price = price_product_line(
            unit_price="8000", quantity=2, tax_applicable=False, tax_rate="19"
        )

        self.assertEqual(price.unit_tax, Decimal("0.00"))
        self.assertEqual(price.total_with_tax, price.subtotal)

    def test_unit_tax_rounds_half_up(self):
        price = price_product_line(
            unit_price="10.05", quantity=2, tax_applicable=True, tax_rate="19"
        )

        # 10.05 * 0.19 = 1.9095
        self.assertEqual(price.unit_tax, Decimal("1.91"))
        self.assertEqual(price.subtotal, Decimal("20.10"))
        self.assertEqual(price.total_with_tax, Decimal("23.92"))

    def test_service_line_is_never_taxed(self):
        price = price_service_line(unit_price="25.000,00", quantity=2)

        self.assertEqual(price.unit_price, Decimal("25000.00"))
        self.assertEqual(price.subtotal, Decimal("50000.00"))

    def test_sale_totals_and_change(self):
        product = price_product_line(
            unit_price="10000", quantity=3, tax_applicable=True, tax_rate="19"
        )
        service = price_service_line(unit_price="25000", quantity=1)

        totals = sum_sale_totals(product_prices=[product], service_prices=[service])

        self.assertEqual(totals.subtotal, Decimal("55000.00"))
        self.assertEqual(totals.tax_total, Decimal("5700.00"))
        self.assertEqual(totals.total, Decimal("60700.00"))
        self.assertEqual(
            calculate_change(amount_tendered="70.000,00", total=totals.total),
            Decimal("9300.00"),
        )

    def test_change_is_never_negative(self):
        self.assertEqual(
            calculate_change(amount_tendered="100", total="150"), Decimal("0.00")
        )
