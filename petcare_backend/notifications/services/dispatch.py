# notifications/services/dispatch.py

"""
POST-COMMIT NOTIFICATION DISPATCH (BEST-EFFORT)

Purpose:
- Tell people about sale events once the sale transaction has COMMITTED:
    sale created (receipt / pending validation)
    sale approved / rejected / cancelled
    return or exchange processed
    low stock after a sale-driven decrement

GUARANTEES:
- Callers schedule these with transaction.on_commit(); nothing here runs if
  the sale transaction rolls back.
- Fire-and-forget: every public function swallows and LOGS its own failure.
  A failed email or notification row never turns a committed sale into an
  error for the caller.
- Kill switches: SALES_NOTIFICATIONS_ENABLED, SALES_EMAIL_NOTIFICATIONS_ENABLED.
"""

from __future__ import annotations

import functools
import logging
from decimal import Decimal

from django.conf import settings
from django.core.mail import send_mail

from notifications.models import Notification
from products.models import Product
from sales.models import Sale
from users.models import User

logger = logging.getLogger(__name__)


# ============================================================
# HELPERS
# ============================================================


def fire_and_forget(func):
    """
    Isolate a post-commit side effect: log any failure, return None.
    """

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        if not settings.SALES_NOTIFICATIONS_ENABLED:
            return None
        try:
            return func(*args, **kwargs)
        except Exception:
            logger.exception(
                "Post-commit notification failed",
                extra={"notification": func.__name__, "params": repr(kwargs)},
            )
            return None

    return wrapper


def _money(value) -> str:
    return f"${Decimal(value or 0):,.2f}"


def _admin_emails() -> list[str]:
    return list(User.objects.admins().exclude(email="").values_list("email", flat=True))


def _send_email(*, subject: str, message: str, recipients) -> bool:
    if not settings.SALES_EMAIL_NOTIFICATIONS_ENABLED:
        return False

    recipients = [r for r in recipients if r]
    if not recipients:
        return False

    try:
        send_mail(
            subject,
            message,
            settings.DEFAULT_FROM_EMAIL,
            recipients,
            fail_silently=False,
        )
    except Exception:
        logger.exception(
            "Email delivery failed",
            extra={"subject": subject, "recipient_count": len(recipients)},
        )
        return False

    return True


def _load_sale(sale_id) -> Sale:
    return Sale.objects.select_related("customer", "user").get(pk=sale_id)


def _customer_email(sale: Sale) -> str:
    customer = sale.customer
    if customer is None or customer.is_walk_in:
        return ""
    return customer.email or ""


# ============================================================
# SALE CREATED
# ============================================================


@fire_and_forget
def notify_sale_created(*, sale_id) -> list[Notification]:
    sale = _load_sale(sale_id)
    created = []

    if sale.status == Sale.Status.PENDING:
        message = (
            f"Sale {sale.invoice_no} for {_money(sale.total_amount)} paid by "
            f"{sale.get_payment_method_display()} is waiting for payment validation. "
            f"Reference: {sale.payment_reference or 'n/a'}."
        )
        email_sent = _send_email(
            subject=f"Sale {sale.invoice_no} pending validation",
            message=message,
            recipients=_admin_emails(),
        )
        created.append(
            Notification.objects.create(
                notification_type=Notification.Type.SALE_PENDING,
                title="Sale pending payment validation",
                message=message,
                priority=Notification.Priority.HIGH,
                for_admins=True,
                sale=sale,
                email_sent=email_sent,
            )
        )

    receipt = (
        f"Receipt {sale.invoice_no}\n"
        f"Date: {sale.sale_date:%Y-%m-%d %H:%M}\n"
        f"Subtotal: {_money(sale.subtotal_amount)}\n"
        f"Tax: {_money(sale.tax_amount)}\n"
        f"Total: {_money(sale.total_amount)}\n"
        f"Payment: {sale.get_payment_method_display()}\n"
        f"Change: {_money(sale.change_amount)}"
    )
    email_sent = _send_email(
        subject=f"Your receipt {sale.invoice_no}",
        message=receipt,
        recipients=[_customer_email(sale)],
    )
    created.append(
        Notification.objects.create(
            notification_type=Notification.Type.SALE_RECEIPT,
            title=f"Sale {sale.invoice_no} registered",
            message=receipt,
            recipient=sale.user,
            sale=sale,
            email_sent=email_sent,
        )
    )

    logger.info(
        "Sale created notifications dispatched",
        extra={"sale_id": str(sale.pk), "count": len(created)},
    )
    return created


# ============================================================
# STATUS CHANGES
# ============================================================


@fire_and_forget
def notify_sale_status_changed(
    *, sale_id, from_status: str, to_status: str, reason: str = ""
) -> list[Notification]:
    sale = _load_sale(sale_id)
    created = []

    if from_status == Sale.Status.PENDING and to_status == Sale.Status.EFFECTIVE:
        message = f"Payment for sale {sale.invoice_no} was validated. The sale is now effective."
        email_sent = _send_email(
            subject="Your order has been approved",
            message=message,
            recipients=[_customer_email(sale)],
        )
        created.append(
            Notification.objects.create(
                notification_type=Notification.Type.SALE_APPROVED,
                title="Sale approved",
                message=message,
                recipient=sale.user,
                sale=sale,
                email_sent=email_sent,
            )
        )

    if to_status == Sale.Status.CANCELLED:
        if from_status == Sale.Status.PENDING:
            message = (
                f"Payment for sale {sale.invoice_no} could not be validated. "
                "Please review it and try again."
            )
            email_sent = _send_email(
                subject="Your order was rejected",
                message=message,
                recipients=[_customer_email(sale)],
            )
            created.append(
                Notification.objects.create(
                    notification_type=Notification.Type.SALE_REJECTED,
                    title="Sale rejected",
                    message=message,
                    recipient=sale.user,
                    sale=sale,
                    email_sent=email_sent,
                )
            )

        customer_name = sale.customer.full_name if sale.customer else "n/a"
        message = (
            f"Sale {sale.invoice_no} for {customer_name} "
            f"({_money(sale.total_amount)}) was cancelled."
        )
        if reason:
            message += f" Reason: {reason}"
        created.append(
            Notification.objects.create(
                notification_type=Notification.Type.SALE_CANCELLED,
                title="Sale cancelled",
                message=message,
                priority=Notification.Priority.HIGH,
                for_admins=True,
                sale=sale,
                email_sent=_send_email(
                    subject=f"Sale {sale.invoice_no} cancelled",
                    message=message,
                    recipients=_admin_emails(),
                ),
            )
        )

    return created


# ============================================================
# RETURNS / EXCHANGES
# ============================================================


@fire_and_forget
def notify_return_processed(*, sale_id) -> Notification:
    sale = _load_sale(sale_id)

    notification = Notification.objects.create(
        notification_type=Notification.Type.RETURN_PROCESSED,
        title=f"{sale.get_sale_type_display()} {sale.invoice_no} processed",
        message=sale.notes,
        for_admins=True,
        sale=sale,
    )
    logger.info(
        "Return notification dispatched",
        extra={"sale_id": str(sale.pk), "origin_sale_id": str(sale.origin_sale_id)},
    )
    return notification


# ============================================================
# LOW STOCK
# ============================================================


@fire_and_forget
def notify_low_stock(*, product_id) -> Notification | None:
    product = Product.objects.get(pk=product_id)

    if not product.is_low_stock:
        return None

    already_open = Notification.objects.filter(
        notification_type=Notification.Type.LOW_STOCK,
        product=product,
        is_read=False,
    ).exists()
    if already_open:
        return None

    message = (
        f"{product.name} ({product.sku}) is running low: "
        f"{product.stock} left, threshold {product.low_stock_threshold}."
    )
    return Notification.objects.create(
        notification_type=Notification.Type.LOW_STOCK,
        title="Low stock",
        message=message,
        priority=(
            Notification.Priority.HIGH if product.stock == 0 else Notification.Priority.NORMAL
        ),
        for_admins=True,
        product=product,
        email_sent=_send_email(
            subject=f"Low stock: {product.name}",
            message=message,
            recipients=_admin_emails(),
        ),
    )
