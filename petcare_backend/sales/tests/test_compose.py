# sales/tests/test_compose.py

from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase
from django.utils import timezone

from products.models import StockMovement
from sales.models import Sale, SaleProductLine
from sales.services.exceptions import (
    InfrastructureError,
    InsufficientStockError,
    NotFoundError,
    PetOwnershipMismatchError,
    SaleValidationError,
)
from sales.services.sale_composer import compose_sale
from sales.services.sale_lines import WALK_IN_NOTE, load_sale_aggregate
from sales.tests.fixtures import (
    make_customer,
    make_product,
    make_service,
    make_user,
    make_walk_in,
    product_line,
    service_line,
)


class ComposeSaleTests(TestCase):
    """
    GUARANTEES:
    - Header totals always equal the sum of the persisted lines
    - Stock is decremented for every product line, or not at all
    - Validation failures never open a transaction
    """

    def setUp(self):
        self.operator = make_user()
        self.walk_in, self.generic_pet = make_walk_in()
        self.customer, (self.pet,) = make_customer()
        self.p1 = make_product(sku="P1", price="1000.00", stock=10)
        self.p2 = make_product(
            sku="P2",
            name="Shampoo antipulgas",
            price="10000.00",
            stock=5,
            tax_applicable=True,
            tax_rate="19",
        )
        self.bath = make_service()

    def _payload(self, **overrides):
        payload = {
            "customer_id": self.customer.pk,
            "payment_method": "efectivo",
            "amount_tendered": "2000",
            "product_lines": [product_line(self.p1, quantity=2)],
        }
        payload.update(overrides)
        return payload

    # =====================================================
    # CORE SCENARIOS
    # =====================================================

    def test_cash_sale_totals_change_and_stock(self):
        aggregate = compose_sale(self._payload(), user=self.operator)
        sale = aggregate.sale

        self.assertEqual(sale.subtotal_amount, Decimal("2000.00"))
        self.assertEqual(sale.tax_amount, Decimal("0.00"))
        self.assertEqual(sale.total_amount, Decimal("2000.00"))
        self.assertEqual(sale.change_amount, Decimal("0.00"))
        self.assertEqual(sale.status, Sale.Status.EFFECTIVE)
        self.assertEqual(sale.sale_type, Sale.SaleType.SALE)
        self.assertEqual(sale.user, self.operator)
        self.assertTrue(sale.invoice_no.startswith("VEN"))

        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 8)

        movement = StockMovement.objects.get(sale=sale)
        self.assertEqual(movement.reason, StockMovement.Reason.SALE)
        self.assertEqual((movement.stock_before, movement.stock_after), (10, 8))

    def test_totals_identity_with_tax_and_services(self):
        aggregate = compose_sale(
            self._payload(
                amount_tendered="70.000,00",
                product_lines=[
                    product_line(self.p1, quantity=2),
                    product_line(self.p2, quantity=3),
                ],
                service_lines=[service_line(self.bath)],
            ),
            user=self.operator,
        )
        sale = aggregate.sale

        line_subtotals = sum(line.subtotal for line in aggregate.product_lines) + sum(
            line.subtotal for line in aggregate.service_lines
        )
        self.assertEqual(sale.subtotal_amount, line_subtotals)
        self.assertEqual(sale.total_amount, sale.subtotal_amount + sale.tax_amount)

        # 2000 + 30000 + 25000 ; tax 1900 * 3
        self.assertEqual(sale.subtotal_amount, Decimal("57000.00"))
        self.assertEqual(sale.tax_amount, Decimal("5700.00"))
        self.assertEqual(sale.total_amount, Decimal("62700.00"))
        self.assertEqual(sale.change_amount, Decimal("7300.00"))

    def test_lines_keep_caller_order(self):
        aggregate = compose_sale(
            self._payload(
                amount_tendered="100000",
                product_lines=[
                    product_line(self.p2, quantity=1),
                    product_line(self.p1, quantity=1),
                ],
            ),
            user=self.operator,
        )

        self.assertEqual(
            [line.product_id for line in aggregate.product_lines],
            [self.p2.pk, self.p1.pk],
        )

    def test_read_back_reproduces_totals_and_lines(self):
        created = compose_sale(
            self._payload(
                amount_tendered="100000",
                service_lines=[service_line(self.bath)],
            ),
            user=self.operator,
        )

        reloaded = load_sale_aggregate(created.sale.pk)

        self.assertEqual(reloaded.total, created.total)
        self.assertEqual(reloaded.subtotal, created.subtotal)
        self.assertEqual(reloaded.tax_total, created.tax_total)
        self.assertEqual(
            {line.pk for line in reloaded.product_lines},
            {line.pk for line in created.product_lines},
        )
        self.assertEqual(
            {line.pk for line in reloaded.service_lines},
            {line.pk for line in created.service_lines},
        )

    # =====================================================
    # ATOMICITY
    # =====================================================

    def test_insufficient_stock_persists_nothing(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            compose_sale(
                self._payload(product_lines=[product_line(self.p1, quantity=11)]),
                user=self.operator,
            )

        self.assertEqual(ctx.exception.available, 10)
        self.assertEqual(ctx.exception.requested, 11)
        self.assertFalse(Sale.objects.exists())
        self.assertFalse(SaleProductLine.objects.exists())

        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)

    def test_failure_on_second_line_rolls_back_first(self):
        with self.assertRaises(InsufficientStockError):
            compose_sale(
                self._payload(
                    amount_tendered="1000000",
                    product_lines=[
                        product_line(self.p1, quantity=3),
                        product_line(self.p2, quantity=6),
                    ],
                ),
                user=self.operator,
            )

        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)
        self.assertFalse(Sale.objects.exists())
        self.assertFalse(StockMovement.objects.exists())

    def test_unknown_product_persists_nothing(self):
        payload = self._payload()
        payload["product_lines"][0]["product_id"] = "6f1c2b7e-0000-4000-8000-000000000000"

        with self.assertRaises(NotFoundError) as ctx:
            compose_sale(payload, user=self.operator)

        self.assertEqual(ctx.exception.field, "product_id")
        self.assertFalse(Sale.objects.exists())

    def test_database_failure_becomes_infrastructure_error(self):
        with mock.patch(
            "sales.services.sale_composer.recalculate_totals",
            side_effect=DatabaseError("disk full"),
        ):
            with self.assertLogs("sales.services.unit_of_work", level="ERROR"):
                with self.assertRaises(InfrastructureError) as ctx:
                    compose_sale(self._payload(), user=self.operator)

        self.assertEqual(len(ctx.exception.correlation_id), 12)
        self.assertNotIn("disk full", ctx.exception.message)
        self.assertFalse(Sale.objects.exists())
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)

    def test_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            compose_sale(self._payload(customer_id=999999), user=self.operator)

    def test_foreign_pet_rolls_back_product_decrement(self):
        _, (other_pet,) = make_customer(document="555", email="")

        with self.assertRaises(PetOwnershipMismatchError):
            compose_sale(
                self._payload(
                    amount_tendered="100000",
                    service_lines=[service_line(self.bath, pet_id=other_pet.pk)],
                ),
                user=self.operator,
            )

        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)
        self.assertFalse(Sale.objects.exists())

    # =====================================================
    # CASH
    # =====================================================

    def test_cash_must_cover_computed_total(self):
        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(self._payload(amount_tendered="1999"), user=self.operator)

        self.assertEqual(ctx.exception.field, "amount_tendered")
        self.assertFalse(Sale.objects.exists())

        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)

    def test_declared_total_is_checked_before_any_query(self):
        with self.assertNumQueries(0):
            with self.assertRaises(SaleValidationError):
                compose_sale(
                    self._payload(amount_tendered="1000", total="2000"),
                    user=self.operator,
                )

    def test_change_for_overpayment(self):
        aggregate = compose_sale(self._payload(amount_tendered="5.000,00"), user=self.operator)

        self.assertEqual(aggregate.sale.change_amount, Decimal("3000.00"))

    # =====================================================
    # VALIDATION (NO TRANSACTION)
    # =====================================================

    def test_sale_without_lines_is_rejected(self):
        with self.assertNumQueries(0):
            with self.assertRaises(SaleValidationError):
                compose_sale(
                    self._payload(product_lines=[], service_lines=[]), user=self.operator
                )

    def test_invalid_line_values_are_rejected(self):
        cases = [
            ({"quantity": 0}, "product_lines[0].quantity"),
            ({"quantity": -2}, "product_lines[0].quantity"),
            ({"quantity": 2.5}, "product_lines[0].quantity"),
            ({"quantity": "dos"}, "product_lines[0].quantity"),
            ({"unit_price": "0"}, "product_lines[0].unit_price"),
            ({"unit_price": "gratis"}, "product_lines[0].unit_price"),
            ({"product_id": ""}, "product_lines[0].product_id"),
            ({"product_id": "no-es-un-id"}, "product_lines[0].product_id"),
            ({"quantity": 2_147_483_648}, "product_lines[0].quantity"),
            ({"unit_price": "10000000000"}, "product_lines[0].unit_price"),
            ({"quantity": 3, "unit_price": "9.999.999.999,00"}, "product_lines[0].quantity"),
        ]
        for override, field in cases:
            with self.subTest(override=override):
                line = product_line(self.p1, quantity=2)
                line.update(override)

                with self.assertRaises(SaleValidationError) as ctx:
                    compose_sale(self._payload(product_lines=[line]), user=self.operator)

                self.assertEqual(ctx.exception.field, field)

    def test_duplicate_product_is_rejected(self):
        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(
                self._payload(
                    product_lines=[product_line(self.p1), product_line(self.p1)]
                ),
                user=self.operator,
            )

        self.assertEqual(ctx.exception.field, "product_lines[1].product_id")

    def test_duplicate_product_in_another_spelling_is_rejected(self):
        canonical = str(self.p1.pk)
        first = product_line(self.p1, quantity=1)
        first["product_id"] = canonical.lower()
        second = product_line(self.p1, quantity=2)
        second["product_id"] = canonical.upper().replace("-", "")

        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(self._payload(product_lines=[first, second]), user=self.operator)

        self.assertEqual(ctx.exception.field, "product_lines[1].product_id")
        self.assertFalse(Sale.objects.exists())
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)

    def test_amount_tendered_above_column_limit(self):
        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(
                self._payload(amount_tendered="99999999999,00"), user=self.operator
            )

        self.assertEqual(ctx.exception.field, "amount_tendered")

    def test_invalid_service_line_is_rejected(self):
        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(
                self._payload(service_lines=[service_line(self.bath, quantity=0)]),
                user=self.operator,
            )

        self.assertEqual(ctx.exception.field, "service_lines[0].quantity")

    def test_invalid_payment_method(self):
        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(self._payload(payment_method="bitcoin"), user=self.operator)

        self.assertEqual(ctx.exception.field, "payment_method")

    def test_future_sale_date_is_rejected(self):
        tomorrow = (timezone.now() + timedelta(days=1)).isoformat()

        with self.assertRaises(SaleValidationError) as ctx:
            compose_sale(self._payload(sale_date=tomorrow), user=self.operator)

        self.assertEqual(ctx.exception.field, "sale_date")

    def test_unparseable_sale_date_is_rejected(self):
        with self.assertRaises(SaleValidationError):
            compose_sale(self._payload(sale_date="ayer"), user=self.operator)

    def test_past_sale_date_is_kept(self):
        aggregate = compose_sale(self._payload(sale_date="2024-03-15"), user=self.operator)

        self.assertEqual(timezone.localtime(aggregate.sale.sale_date).date().isoformat(), "2024-03-15")

    def test_sale_cannot_start_cancelled(self):
        with self.assertRaises(SaleValidationError):
            compose_sale(self._payload(status="Cancelada"), user=self.operator)

    # =====================================================
    # PAYMENT / CUSTOMER RULES
    # =====================================================

    def test_transfer_starts_pending_with_reference(self):
        aggregate = compose_sale(
            self._payload(payment_method="transferencia", amount_tendered=None),
            user=self.operator,
        )
        sale = aggregate.sale

        self.assertEqual(sale.status, Sale.Status.PENDING)
        self.assertTrue(sale.payment_reference.startswith("REF-"))
        self.assertEqual(sale.change_amount, Decimal("0.00"))

        # stock leaves at creation regardless of status
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 8)

    def test_transfer_keeps_supplied_reference(self):
        aggregate = compose_sale(
            self._payload(payment_method="transferencia", payment_reference="BANCO-991"),
            user=self.operator,
        )

        self.assertEqual(aggregate.sale.payment_reference, "BANCO-991")

    def test_effective_qr_sale_gets_code(self):
        aggregate = compose_sale(self._payload(payment_method="qr"), user=self.operator)

        self.assertEqual(aggregate.sale.status, Sale.Status.EFFECTIVE)
        self.assertTrue(aggregate.sale.qr_code.startswith("QR-"))

    def test_cash_clears_reference(self):
        aggregate = compose_sale(
            self._payload(payment_reference="X-1", qr_code="QR-9"), user=self.operator
        )

        self.assertEqual(aggregate.sale.payment_reference, "")
        self.assertEqual(aggregate.sale.qr_code, "")

    def test_missing_customer_falls_back_to_walk_in(self):
        payload = self._payload(
            amount_tendered="100000",
            service_lines=[service_line(self.bath, temp_pet_name="Toby")],
        )
        del payload["customer_id"]

        aggregate = compose_sale(payload, user=self.operator)

        self.assertEqual(aggregate.sale.customer, self.walk_in)
        self.assertEqual(aggregate.sale.notes, WALK_IN_NOTE)

        (line,) = aggregate.service_lines
        self.assertEqual(line.pet, self.generic_pet)
        self.assertEqual(line.temp_pet_name, "Toby")

    def test_locale_formatted_prices(self):
        aggregate = compose_sale(
            self._payload(
                amount_tendered="2.000,00",
                product_lines=[product_line(self.p1, quantity=2, unit_price="1.000,00")],
            ),
            user=self.operator,
        )

        self.assertEqual(aggregate.product_lines[0].unit_price, Decimal("1000.00"))
        self.assertEqual(aggregate.sale.total_amount, Decimal("2000.00"))
