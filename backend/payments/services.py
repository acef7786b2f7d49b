from decimal import Decimal
from django.db import transaction
from django.utils import timezone
import logging

from core_backend.concurrency import conditional_update, retry_on_conflict
from core_backend.config import engine_settings
from core_backend.exceptions import InvalidStateError, ValidationFailedError
from orders.models import Order
from orders.services import OrderService
from .models import OrderPayment

# Import the money precision helpers
from .money import ZERO, quantize, to_decimal

logger = logging.getLogger(__name__)


def derive_settlement(total, paid_amount):
    """
    Settlement state for an order total and the sum of its payments.

    Returns:
        (remaining_amount, payment_status, change_due)

    ``remaining_amount`` never goes below zero; anything paid beyond the total
    is reported as ``change_due`` instead.
    """
    total = to_decimal(total)
    paid_amount = to_decimal(paid_amount)

    remaining = total - paid_amount
    if remaining < 0:
        remaining = ZERO
    change_due = paid_amount - total
    if change_due < 0:
        change_due = ZERO

    if remaining == 0 and (total > 0 or paid_amount > 0):
        status = Order.PaymentStatus.PAID
    elif paid_amount > 0:
        status = Order.PaymentStatus.PARTIAL
    else:
        status = Order.PaymentStatus.PENDING

    currency = engine_settings.currency
    return quantize(currency, remaining), status, quantize(currency, change_due)


class PaymentLedgerService:
    """
    Append-only payment ledger for orders.

    Every payment is appended together with the recomputed order settlement
    fields in one transaction, guarded by the order's version, so two
    waiters paying the same bill at once cannot lose each other's payment.
    """

    @staticmethod
    def _read_order(order_id) -> Order:
        return OrderService.get_order(order_id)

    @staticmethod
    def _validate(method, amount) -> Decimal:
        if method not in OrderPayment.PaymentMethod.values:
            raise ValidationFailedError(
                f"'{method}' is not a valid payment method.", field="method"
            )
        try:
            amount = to_decimal(amount)
        except (TypeError, ValueError) as e:
            raise ValidationFailedError(str(e), field="amount") from None
        if not amount.is_finite() or amount <= 0:
            raise ValidationFailedError("Payment amount must be greater than zero", field="amount")

        quantized = quantize(engine_settings.currency, amount)
        if quantized != amount:
            raise ValidationFailedError(
                f"Payment amount {amount} has more decimals than {engine_settings.currency} allows",
                field="amount",
            )
        return quantized

    @staticmethod
    @retry_on_conflict()
    def add_payment(order_id, method: str, amount, processed_by=None, transaction_id=None) -> Order:
        """
        Record a payment and return the updated order.

        Overpayment is accepted; the surplus shows up as the order's
        ``change_due``.

        Raises:
            ValidationFailedError: unknown method or non-positive amount
            NotFoundError: unknown order
            InvalidStateError: order closed, already paid, or a split parent
            ConflictError: still losing the version race after all retries
        """
        amount = PaymentLedgerService._validate(method, amount)
        order = PaymentLedgerService._read_order(order_id)

        if order.is_terminal:
            raise InvalidStateError(
                f"Cannot add a payment to order {order.order_number}: it is {order.status}",
                order_id=order.pk,
            )
        if order.is_split_parent:
            raise InvalidStateError(
                f"Order {order.order_number} was split; pay its split orders instead",
                order_id=order.pk,
            )
        if order.payment_status == Order.PaymentStatus.PAID:
            raise InvalidStateError(
                f"Order {order.order_number} is already paid",
                order_id=order.pk,
            )

        paid_amount = quantize(engine_settings.currency, order.paid_amount + amount)
        remaining, payment_status, change_due = derive_settlement(order.total, paid_amount)
        now = timezone.now()

        with transaction.atomic():
            conditional_update(
                Order.objects,
                order.pk,
                order.version,
                paid_amount=paid_amount,
                remaining_amount=remaining,
                payment_status=payment_status,
                updated_at=now,
            )
            payment = OrderPayment.objects.create(
                order_id=order.pk,
                method=method,
                amount=amount,
                transaction_id=transaction_id or None,
                processed_by=str(processed_by) if processed_by is not None else None,
                paid_at=now,
            )

        logger.info(
            f"Recorded {method} payment {payment.pk} of {amount} on order {order.order_number}: "
            f"paid {paid_amount}/{order.total}, status {payment_status}"
            + (f", change due {change_due}" if change_due > 0 else "")
        )
        return OrderService.get_order(order.pk)
