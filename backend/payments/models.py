import uuid
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class OrderPayment(models.Model):
    """
    One settlement fact recorded against an order.

    Rows are append-only: capture happens outside this system, and the ledger
    only records what was collected. The order's paid_amount is always the
    sum of its rows.
    """

    class PaymentMethod(models.TextChoices):
        CASH = "cash", _("Cash")
        CARD = "card", _("Card")
        UPI = "upi", _("UPI")
        WALLET = "wallet", _("Wallet")
        OTHER = "other", _("Other")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    order = models.ForeignKey(
        "orders.Order", on_delete=models.CASCADE, related_name="payments"
    )
    method = models.CharField(max_length=10, choices=PaymentMethod.choices)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    transaction_id = models.CharField(
        max_length=255,
        blank=True,
        null=True,
        help_text=_("Reference from the external terminal or gateway, if any."),
    )
    processed_by = models.CharField(max_length=64, blank=True, null=True)
    paid_at = models.DateTimeField(default=timezone.now, editable=False)

    class Meta:
        ordering = ["paid_at"]
        verbose_name = _("Order Payment")
        verbose_name_plural = _("Order Payments")
        indexes = [
            models.Index(fields=["order", "paid_at"], name="payment_order_paid_at_idx"),
        ]

    def __str__(self):
        return f"{self.method} {self.amount} for Order {self.order_id}"
