# sales/tests/test_mutate.py

from decimal import Decimal

from django.test import TestCase

from sales.models import Sale
from sales.services.exceptions import (
    InsufficientStockError,
    InvalidStatusError,
    SaleValidationError,
)
from sales.services.sale_composer import compose_sale
from sales.services.sale_mutator import mutate_sale
from sales.services.sale_status_service import change_sale_status
from sales.tests.fixtures import (
    make_customer,
    make_product,
    make_service,
    make_user,
    product_line,
    service_line,
)


class MutateSaleTests(TestCase):
    """
    GUARANTEES:
    - Replacing product lines first gives back the old stock
    - A failed replacement leaves lines, totals and stock untouched
    - Omitted line arrays keep the persisted lines
    """

    def setUp(self):
        self.operator = make_user()
        self.customer, (self.pet,) = make_customer()
        self.p1 = make_product(sku="P1", price="1000.00", stock=10)
        self.p2 = make_product(sku="P2", name="Collar", price="5000.00", stock=3)
        self.bath = make_service()

        self.sale = compose_sale(
            {
                "customer_id": self.customer.pk,
                "payment_method": "efectivo",
                "amount_tendered": "30000",
                "product_lines": [product_line(self.p1, quantity=2)],
                "service_lines": [service_line(self.bath)],
            },
            user=self.operator,
        ).sale

    def _stock(self, product):
        product.refresh_from_db()
        return product.stock

    def test_header_only_update_keeps_lines_and_stock(self):
        aggregate = mutate_sale(self.sale.pk, {"notes": "Cliente frecuente"})

        self.assertEqual(aggregate.sale.notes, "Cliente frecuente")
        self.assertEqual(len(aggregate.product_lines), 1)
        self.assertEqual(len(aggregate.service_lines), 1)
        self.assertEqual(aggregate.sale.total_amount, Decimal("27000.00"))
        self.assertEqual(self._stock(self.p1), 8)

    def test_replacing_product_lines_moves_stock(self):
        aggregate = mutate_sale(
            self.sale.pk,
            {"product_lines": [product_line(self.p2, quantity=1)]},
            user=self.operator,
        )

        self.assertEqual(self._stock(self.p1), 10)
        self.assertEqual(self._stock(self.p2), 2)
        self.assertEqual([line.product_id for line in aggregate.product_lines], [self.p2.pk])
        self.assertEqual(aggregate.sale.subtotal_amount, Decimal("30000.00"))
        self.assertEqual(aggregate.sale.change_amount, Decimal("0.00"))

    def test_same_product_new_quantity(self):
        mutate_sale(
            self.sale.pk,
            {"product_lines": [product_line(self.p1, quantity=5)], "amount_tendered": "40000"},
        )

        self.assertEqual(self._stock(self.p1), 5)

    def test_failed_replacement_rolls_back_reversal(self):
        with self.assertRaises(InsufficientStockError):
            mutate_sale(
                self.sale.pk,
                {"product_lines": [product_line(self.p2, quantity=4)]},
            )

        self.assertEqual(self._stock(self.p1), 8)
        self.assertEqual(self._stock(self.p2), 3)

        self.sale.refresh_from_db()
        self.assertEqual(self.sale.total_amount, Decimal("27000.00"))
        self.assertEqual(
            list(self.sale.product_lines.values_list("product_id", flat=True)),
            [self.p1.pk],
        )

    def test_empty_product_lines_remove_products(self):
        aggregate = mutate_sale(self.sale.pk, {"product_lines": []})

        self.assertEqual(aggregate.product_lines, ())
        self.assertEqual(aggregate.sale.total_amount, Decimal("25000.00"))
        self.assertEqual(self._stock(self.p1), 10)

    def test_removing_every_line_is_rejected(self):
        with self.assertRaises(SaleValidationError):
            mutate_sale(self.sale.pk, {"product_lines": [], "service_lines": []})

        with self.assertRaises(SaleValidationError):
            mutate_sale(self.sale.pk, {"service_lines": [], "product_lines": None})

        self.assertEqual(self._stock(self.p1), 8)

    def test_status_cannot_be_changed_here(self):
        with self.assertRaises(SaleValidationError) as ctx:
            mutate_sale(self.sale.pk, {"status": "Cancelada"})

        self.assertEqual(ctx.exception.field, "status")

    def test_cash_must_still_cover_total(self):
        with self.assertRaises(SaleValidationError):
            mutate_sale(
                self.sale.pk,
                {"product_lines": [product_line(self.p1, quantity=9)]},
            )

        self.assertEqual(self._stock(self.p1), 8)

    def test_customer_change_requires_service_lines(self):
        other, _ = make_customer(document="777", email="")

        with self.assertRaises(SaleValidationError) as ctx:
            mutate_sale(self.sale.pk, {"customer_id": other.pk})

        self.assertEqual(ctx.exception.field, "service_lines")

    def test_customer_change_re_resolves_pets(self):
        other, (other_pet,) = make_customer(document="777", email="")

        aggregate = mutate_sale(
            self.sale.pk,
            {"customer_id": other.pk, "service_lines": [service_line(self.bath)]},
        )

        self.assertEqual(aggregate.sale.customer, other)
        self.assertEqual(aggregate.service_lines[0].pet, other_pet)

    def test_switch_to_transfer_generates_reference(self):
        aggregate = mutate_sale(self.sale.pk, {"payment_method": "transferencia"})

        self.assertTrue(aggregate.sale.payment_reference.startswith("REF-"))
        self.assertEqual(aggregate.sale.change_amount, Decimal("0.00"))
        # status only moves through the status service
        self.assertEqual(aggregate.sale.status, Sale.Status.EFFECTIVE)

    def test_cancelled_sale_is_frozen(self):
        change_sale_status(sale_id=self.sale.pk, new_status=Sale.Status.CANCELLED)

        with self.assertRaises(InvalidStatusError):
            mutate_sale(self.sale.pk, {"notes": "late edit"})
