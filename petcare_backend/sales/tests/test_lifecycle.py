# sales/tests/test_lifecycle.py

from django.core.exceptions import ValidationError
from django.test import SimpleTestCase, TestCase

from notifications.models import Notification
from products.models import StockMovement
from sales.models import Sale, SaleStatusChange
from sales.services.exceptions import InvalidStatusError
from sales.services.sale_composer import compose_sale
from sales.services.sale_lifecycle import can_transition, parse_status
from sales.services.sale_status_service import (
    approve_sale,
    change_sale_status,
    delete_sale,
    reject_sale,
)
from sales.tests.fixtures import make_customer, make_product, make_user, product_line

Status = Sale.Status


class TransitionTableTests(SimpleTestCase):
    def test_allowed_transitions(self):
        allowed = [
            (Status.PENDING, Status.EFFECTIVE),
            (Status.PENDING, Status.CANCELLED),
            (Status.EFFECTIVE, Status.CANCELLED),
            (Status.EFFECTIVE, Status.RETURNED),
            (Status.EFFECTIVE, Status.PARTIALLY_RETURNED),
            (Status.PARTIALLY_RETURNED, Status.RETURNED),
        ]
        for from_status, to_status in allowed:
            with self.subTest(from_status=from_status, to_status=to_status):
                self.assertTrue(can_transition(from_status=from_status, to_status=to_status))

    def test_terminal_and_backward_moves_are_blocked(self):
        blocked = [
            (Status.CANCELLED, Status.EFFECTIVE),
            (Status.RETURNED, Status.EFFECTIVE),
            (Status.EFFECTIVE, Status.PENDING),
            (Status.EFFECTIVE, Status.EFFECTIVE),
            (Status.PARTIALLY_RETURNED, Status.CANCELLED),
        ]
        for from_status, to_status in blocked:
            with self.subTest(from_status=from_status, to_status=to_status):
                self.assertFalse(can_transition(from_status=from_status, to_status=to_status))

    def test_parse_status_accepts_values_and_names(self):
        self.assertEqual(parse_status("Cancelada"), Status.CANCELLED)
        self.assertEqual(parse_status("cancelled"), Status.CANCELLED)
        self.assertEqual(parse_status("partially returned"), Status.PARTIALLY_RETURNED)

    def test_parse_status_rejects_unknown(self):
        for value in ("Anulada", "", None):
            with self.subTest(value=value):
                with self.assertRaises(InvalidStatusError):
                    parse_status(value)


class SaleStatusServiceTests(TestCase):
    """
    GUARANTEES:
    - Cancel / return reverses exactly what the sale took out of stock
    - Invalid transitions never write
    - Skipping the stock reversal is explicit and audited
    """

    def setUp(self):
        self.operator = make_user()
        self.admin = make_user(email="admin@example.com", role="admin")
        self.customer, _ = make_customer()
        self.product = make_product(sku="P1", price="1000.00", stock=10)

    def _sale(self, **overrides):
        payload = {
            "customer_id": self.customer.pk,
            "payment_method": "efectivo",
            "amount_tendered": "2000",
            "product_lines": [product_line(self.product, quantity=2)],
        }
        payload.update(overrides)
        return compose_sale(payload, user=self.operator).sale

    def _stock(self):
        self.product.refresh_from_db()
        return self.product.stock

    # =====================================================
    # REVERSAL
    # =====================================================

    def test_cancel_restores_pre_sale_stock(self):
        sale = self._sale()
        self.assertEqual(self._stock(), 8)

        aggregate = change_sale_status(sale_id=sale.pk, new_status="Cancelada", user=self.admin)

        self.assertEqual(aggregate.sale.status, Status.CANCELLED)
        self.assertEqual(self._stock(), 10)

        (change,) = aggregate.status_changes
        self.assertEqual((change.from_status, change.to_status), (Status.EFFECTIVE, Status.CANCELLED))
        self.assertTrue(change.stock_reversed)
        self.assertTrue(
            StockMovement.objects.filter(
                sale=sale, reason=StockMovement.Reason.SALE_REVERSAL, quantity=2
            ).exists()
        )

    def test_full_return_status_restores_stock(self):
        sale = self._sale()

        change_sale_status(sale_id=sale.pk, new_status=Status.RETURNED, user=self.admin)

        self.assertEqual(self._stock(), 10)

    def test_partially_returned_status_keeps_stock(self):
        sale = self._sale()

        change_sale_status(
            sale_id=sale.pk, new_status=Status.PARTIALLY_RETURNED, user=self.admin
        )

        self.assertEqual(self._stock(), 8)

    def test_pending_cancel_reverses_by_default(self):
        sale = self._sale(payment_method="transferencia")

        change_sale_status(sale_id=sale.pk, new_status=Status.CANCELLED, user=self.admin)

        self.assertEqual(self._stock(), 10)

    def test_skip_stock_return_is_audited(self):
        sale = self._sale(payment_method="transferencia")

        with self.assertLogs("sales.services.sale_status_service", level="WARNING"):
            aggregate = change_sale_status(
                sale_id=sale.pk,
                new_status=Status.CANCELLED,
                skip_stock_return=True,
                user=self.admin,
                reason="stock handled by warehouse",
            )

        self.assertEqual(self._stock(), 8)
        (change,) = aggregate.status_changes
        self.assertTrue(change.skip_stock_return)
        self.assertFalse(change.stock_reversed)
        self.assertEqual(change.changed_by, self.admin)

    # =====================================================
    # INVALID MOVES
    # =====================================================

    def test_cancelled_sale_cannot_be_reactivated(self):
        sale = self._sale()
        change_sale_status(sale_id=sale.pk, new_status=Status.CANCELLED)

        with self.assertRaises(InvalidStatusError):
            change_sale_status(sale_id=sale.pk, new_status=Status.EFFECTIVE)

        sale.refresh_from_db()
        self.assertEqual(sale.status, Status.CANCELLED)
        self.assertEqual(self._stock(), 10)
        self.assertEqual(SaleStatusChange.objects.filter(sale=sale).count(), 1)

    def test_unknown_status_is_rejected(self):
        sale = self._sale()

        with self.assertRaises(InvalidStatusError):
            change_sale_status(sale_id=sale.pk, new_status="Anulada")

        sale.refresh_from_db()
        self.assertEqual(sale.status, Status.EFFECTIVE)

    def test_same_status_is_rejected(self):
        sale = self._sale()

        with self.assertRaises(InvalidStatusError):
            change_sale_status(sale_id=sale.pk, new_status=Status.EFFECTIVE)

    def test_model_refuses_illegal_status_write(self):
        sale = self._sale()
        change_sale_status(sale_id=sale.pk, new_status=Status.CANCELLED)

        sale.refresh_from_db()
        sale.status = Status.EFFECTIVE
        with self.assertRaises(ValidationError):
            sale.save()

    # =====================================================
    # APPROVE / REJECT
    # =====================================================

    def test_approve_pending_keeps_stock(self):
        sale = self._sale(payment_method="transferencia")

        aggregate = approve_sale(sale_id=sale.pk, user=self.admin)

        self.assertEqual(aggregate.sale.status, Status.EFFECTIVE)
        self.assertEqual(self._stock(), 8)

    def test_reject_pending_reverses_stock(self):
        sale = self._sale(payment_method="transferencia")

        aggregate = reject_sale(sale_id=sale.pk, user=self.admin, reason="no payment")

        self.assertEqual(aggregate.sale.status, Status.CANCELLED)
        self.assertEqual(self._stock(), 10)
        self.assertEqual(aggregate.status_changes[0].reason, "no payment")

    def test_approve_requires_pending(self):
        sale = self._sale()

        with self.assertRaises(InvalidStatusError):
            approve_sale(sale_id=sale.pk, user=self.admin)

    def test_cancel_notifies_admins_after_commit(self):
        sale = self._sale()

        with self.captureOnCommitCallbacks(execute=True):
            change_sale_status(
                sale_id=sale.pk, new_status=Status.CANCELLED, user=self.admin, reason="error"
            )

        notification = Notification.objects.get(
            sale=sale, notification_type=Notification.Type.SALE_CANCELLED
        )
        self.assertTrue(notification.for_admins)
        self.assertIn("error", notification.message)

    # =====================================================
    # DELETE
    # =====================================================

    def test_delete_restores_stock(self):
        sale = self._sale()

        delete_sale(sale_id=sale.pk, user=self.admin)

        self.assertFalse(Sale.objects.filter(pk=sale.pk).exists())
        self.assertEqual(self._stock(), 10)

    def test_delete_cancelled_sale_does_not_double_reverse(self):
        sale = self._sale()
        change_sale_status(sale_id=sale.pk, new_status=Status.CANCELLED)

        delete_sale(sale_id=sale.pk)

        self.assertEqual(self._stock(), 10)

    def test_returned_sale_cannot_be_deleted(self):
        sale = self._sale()
        change_sale_status(sale_id=sale.pk, new_status=Status.RETURNED)

        with self.assertRaises(InvalidStatusError):
            delete_sale(sale_id=sale.pk)
