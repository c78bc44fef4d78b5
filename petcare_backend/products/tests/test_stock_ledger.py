# products/tests/test_stock_ledger.py

from decimal import Decimal
from unittest import mock

from django.core.exceptions import ValidationError
from django.db import transaction
from django.test import TestCase, TransactionTestCase

from products.models import Product, StockMovement
from products.services.stock_adjustments import adjust_product_stock
from products.services.stock_ledger import stock_ledger
from sales.services.exceptions import (
    InsufficientStockError,
    NotFoundError,
    StockLedgerError,
)

ADJUSTMENT = StockMovement.Reason.ADJUSTMENT


def _product(stock=10, threshold=2):
    return Product.objects.create(
        sku="SKU-LEDGER",
        name="Arena para gato",
        unit_price=Decimal("18000.00"),
        stock=stock,
        low_stock_threshold=threshold,
    )


class StockLedgerTests(TestCase):
    """
    GUARANTEES:
    - Decrement never drives stock below zero
    - A failed decrement leaves stock untouched
    - Every adjustment writes one immutable StockMovement
    """

    def setUp(self):
        self.product = _product()

    def test_decrement_writes_stock_and_movement(self):
        with transaction.atomic():
            result = stock_ledger.decrement(
                product_id=self.product.pk, quantity=3, reason=ADJUSTMENT
            )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 7)
        self.assertEqual((result.stock_before, result.stock_after), (10, 7))

        movement = StockMovement.objects.get(product=self.product)
        self.assertEqual(movement.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(movement.quantity, 3)

    def test_decrement_beyond_stock_fails_and_keeps_stock(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            with transaction.atomic():
                stock_ledger.decrement(
                    product_id=self.product.pk, quantity=11, reason=ADJUSTMENT
                )

        self.assertEqual(ctx.exception.available, 10)
        self.assertEqual(ctx.exception.requested, 11)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StockMovement.objects.exists())

    def test_guarded_update_catches_a_concurrent_decrement(self):
        stale = Product.objects.get(pk=self.product.pk)
        # another sale committed between our locked read and the write
        Product.objects.filter(pk=self.product.pk).update(stock=2)

        with mock.patch(
            "products.services.stock_ledger.Product.objects.select_for_update"
        ) as locked:
            locked.return_value.get.return_value = stale

            with self.assertRaises(InsufficientStockError) as ctx:
                with transaction.atomic():
                    stock_ledger.decrement(
                        product_id=self.product.pk, quantity=5, reason=ADJUSTMENT
                    )

        self.assertEqual((ctx.exception.available, ctx.exception.requested), (2, 5))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)
        self.assertFalse(StockMovement.objects.exists())

    def test_decrement_to_exactly_zero_is_allowed(self):
        with transaction.atomic():
            stock_ledger.decrement(
                product_id=self.product.pk, quantity=10, reason=ADJUSTMENT
            )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)

    def test_increment_is_unbounded(self):
        with transaction.atomic():
            stock_ledger.increment(
                product_id=self.product.pk, quantity=5000, reason=ADJUSTMENT
            )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 5010)

    def test_decrement_then_increment_restores_stock(self):
        with transaction.atomic():
            stock_ledger.decrement(product_id=self.product.pk, quantity=4, reason=ADJUSTMENT)
            stock_ledger.increment(product_id=self.product.pk, quantity=4, reason=ADJUSTMENT)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_quantity_must_be_positive_integer(self):
        for bad in (0, -1, 2.5, "abc", None, True):
            with self.subTest(quantity=bad):
                with self.assertRaises(StockLedgerError):
                    with transaction.atomic():
                        stock_ledger.decrement(
                            product_id=self.product.pk, quantity=bad, reason=ADJUSTMENT
                        )

    def test_unknown_product(self):
        with self.assertRaises(NotFoundError):
            with transaction.atomic():
                stock_ledger.decrement(
                    product_id="00000000-0000-0000-0000-000000000000",
                    quantity=1,
                    reason=ADJUSTMENT,
                )

    def test_sale_reasons_require_a_sale(self):
        with self.assertRaises(ValidationError):
            with transaction.atomic():
                stock_ledger.decrement(
                    product_id=self.product.pk,
                    quantity=1,
                    reason=StockMovement.Reason.SALE,
                )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_direct_stock_write_is_refused(self):
        self.product.stock = 99
        with self.assertRaises(ValidationError):
            self.product.save()

    def test_low_stock_notification_is_scheduled_after_commit(self):
        with self.captureOnCommitCallbacks() as callbacks:
            with transaction.atomic():
                stock_ledger.decrement(
                    product_id=self.product.pk, quantity=8, reason=ADJUSTMENT
                )

        self.assertEqual(len(callbacks), 1)

    def test_no_low_stock_notification_above_threshold(self):
        with self.captureOnCommitCallbacks() as callbacks:
            with transaction.atomic():
                stock_ledger.decrement(
                    product_id=self.product.pk, quantity=1, reason=ADJUSTMENT
                )

        self.assertEqual(callbacks, [])


class StockAdjustmentServiceTests(TestCase):
    def setUp(self):
        self.product = _product(stock=4)

    def test_receipt_adds_stock(self):
        adjust_product_stock(
            product=self.product,
            quantity_delta=6,
            reason=StockMovement.Reason.RECEIPT,
        )

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_negative_adjustment_cannot_go_below_zero(self):
        with self.assertRaises(InsufficientStockError):
            adjust_product_stock(product=self.product, quantity_delta=-5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 4)

    def test_receipt_cannot_remove_stock(self):
        with self.assertRaises(StockLedgerError):
            adjust_product_stock(
                product=self.product,
                quantity_delta=-1,
                reason=StockMovement.Reason.RECEIPT,
            )

    def test_sale_reasons_are_reserved(self):
        with self.assertRaises(StockLedgerError):
            adjust_product_stock(
                product=self.product,
                quantity_delta=1,
                reason=StockMovement.Reason.SALE,
            )


class StockLedgerTransactionTests(TransactionTestCase):
    """
    Runs without the TestCase wrapper transaction so autocommit is real.
    """

    def test_adjust_outside_atomic_is_rejected(self):
        product = _product()

        with self.assertRaises(StockLedgerError):
            stock_ledger.decrement(product_id=product.pk, quantity=1, reason=ADJUSTMENT)

        product.refresh_from_db()
        self.assertEqual(product.stock, 10)
