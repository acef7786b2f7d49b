import uuid
from decimal import Decimal
from django.db import models, transaction, IntegrityError
from django.db.models.functions import Length
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core_backend.config import engine_settings


class OrderQuerySet(models.QuerySet):
    def non_terminal(self):
        return self.exclude(status__in=Order.TERMINAL_STATUSES)

    def exclude_split_parents(self):
        return self.exclude(is_split=True, parent_order__isnull=True)

    def revenue_eligible(self):
        """
        Orders that count towards revenue aggregates.

        A split parent keeps its original items and totals for reference, but
        the money is collected through its children, so counting both would
        double the revenue.
        """
        return self.exclude_split_parents()

    def for_branch_day(self, branch_id, day):
        return self.filter(branch_id=branch_id, business_date=day)


class Order(models.Model):
    class OrderStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        CONFIRMED = "confirmed", _("Confirmed")
        PREPARING = "preparing", _("Preparing")
        READY = "ready", _("Ready")
        SERVED = "served", _("Served")
        COMPLETED = "completed", _("Completed")
        CANCELLED = "cancelled", _("Cancelled")

    class OrderType(models.TextChoices):
        DINE_IN = "dine-in", _("Dine In")
        TAKEAWAY = "takeaway", _("Takeaway")
        DELIVERY = "delivery", _("Delivery")

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PARTIAL = "partial", _("Partially Paid")
        PAID = "paid", _("Paid")
        REFUNDED = "refunded", _("Refunded")

    TERMINAL_STATUSES = (OrderStatus.COMPLETED, OrderStatus.CANCELLED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    version = models.PositiveIntegerField(
        default=1,
        help_text=_("Optimistic concurrency token, bumped on every write."),
    )
    order_number = models.CharField(max_length=40, blank=True, null=True)

    # --- Scope ---
    company_id = models.UUIDField(null=True, blank=True, db_index=True)
    branch_id = models.UUIDField(db_index=True)
    business_date = models.DateField(
        default=timezone.localdate,
        help_text=_("Local calendar day the order belongs to. Bounds same-day queries."),
    )
    order_type = models.CharField(
        max_length=10, choices=OrderType.choices, default=OrderType.DINE_IN
    )
    table = models.ForeignKey(
        "tables.Table",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="orders",
    )
    table_number = models.CharField(
        max_length=20,
        blank=True,
        default="",
        help_text=_("Snapshot of the table number, kept after the table link is removed."),
    )
    waiter_id = models.CharField(max_length=64, blank=True, null=True)

    # --- Customer / guest ---
    customer_id = models.UUIDField(null=True, blank=True)
    guest_name = models.CharField(max_length=150, blank=True, default="")
    guest_phone = models.CharField(max_length=20, blank=True, default="")
    guest_email = models.EmailField(blank=True, default="")
    notes = models.TextField(blank=True, default="")

    # --- Lifecycle ---
    status = models.CharField(
        max_length=10, choices=OrderStatus.choices, default=OrderStatus.PENDING
    )
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    # --- Financial Fields ---
    subtotal = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    tax_rate = models.DecimalField(max_digits=5, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    service_charge_rate = models.DecimalField(
        max_digits=5, decimal_places=2, default=Decimal("0.00")
    )
    service_charge_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    discount_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )
    delivery_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    paid_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    remaining_amount = models.DecimalField(
        max_digits=10, decimal_places=2, default=Decimal("0.00")
    )

    # --- Split billing ---
    is_split = models.BooleanField(default=False)
    parent_order = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="split_orders",
    )

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Timestamp when order was marked as completed. Use this for daily reports and revenue tracking.",
    )
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True, default="")

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "order_number"]
        verbose_name = _("Order")
        verbose_name_plural = _("Orders")
        indexes = [
            models.Index(fields=["branch_id", "status"], name="order_branch_status_idx"),
            models.Index(fields=["branch_id", "business_date", "order_type"], name="order_branch_day_type_idx"),
            models.Index(fields=["table", "business_date"], name="order_table_day_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["branch_id", "order_number"],
                condition=models.Q(order_number__isnull=False),
                name="unique_order_number_per_branch",
            ),
        ]

    def __str__(self):
        return f"Order {self.order_number or self.pk} ({self.order_type}) - {self.status}"

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES

    @property
    def is_split_parent(self):
        return self.is_split and self.parent_order_id is None

    @property
    def change_due(self):
        """Amount paid beyond the total, owed back to the guest."""
        surplus = self.paid_amount - self.total
        return surplus if surplus > 0 else Decimal("0.00")

    @property
    def split_order_ids(self):
        if not self.is_split_parent:
            return []
        return [child.pk for child in self.split_orders.all().order_by(Length("order_number"), "order_number")]

    def save(self, *args, **kwargs):
        # Generate order_number only if it's not already set
        if not self.order_number:
            max_retries = 5  # Prevent infinite loop in extreme race conditions
            for _attempt in range(max_retries):
                self.order_number = self._generate_daily_order_number()
                try:
                    with transaction.atomic():
                        super().save(*args, **kwargs)
                    break
                except IntegrityError:
                    # Another request took the number, try the next one
                    self.order_number = None
                    self._state.adding = True
            else:
                raise IntegrityError(
                    "Failed to generate a unique order number after multiple retries."
                )
        else:
            if not self._state.adding:
                self.updated_at = timezone.now()
            super().save(*args, **kwargs)

    def _generate_daily_order_number(self):
        """
        Next ``{PREFIX}-YYMMDD-NNNN`` number for this order's branch and day.

        Numbering restarts at 0001 every business day and is independent per
        branch. Split children derive their numbers from the parent instead.
        """
        prefix = f"{engine_settings.order_number_prefix}-{self.business_date:%y%m%d}-"
        last_number = (
            Order.objects.filter(
                branch_id=self.branch_id,
                order_number__startswith=prefix,
                parent_order__isnull=True,
            )
            # Longer suffix first, so -10000 sorts after -9999.
            .order_by(Length("order_number").desc(), "-order_number")
            .values_list("order_number", flat=True)
            .first()
        )
        sequence = 1
        if last_number:
            try:
                sequence = int(last_number[len(prefix):]) + 1
            except ValueError:
                sequence = Order.objects.filter(
                    branch_id=self.branch_id, order_number__startswith=prefix
                ).count() + 1
        return f"{prefix}{sequence:04d}"


class OrderItem(models.Model):
    """
    One line of an order. Name and prices are copied from the catalog when the
    line is created and never follow later catalog edits.
    """

    class ItemStatus(models.TextChoices):
        PENDING = "pending", _("Pending")
        PREPARING = "preparing", _("Preparing")
        READY = "ready", _("Ready")
        SERVED = "served", _("Served")

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    position = models.PositiveIntegerField(
        help_text=_("Zero-based index of the line within its order.")
    )
    menu_item_id = models.UUIDField()
    name = models.CharField(max_length=200)
    base_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1)
    variant_name = models.CharField(max_length=100, blank=True, null=True)
    variant_price_modifier = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    addons = models.JSONField(
        default=list,
        blank=True,
        help_text=_("Selected add-ons as [{name, price}], prices stored as strings."),
    )
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    total_price = models.DecimalField(max_digits=10, decimal_places=2)
    notes = models.CharField(max_length=255, blank=True, default="")

    status = models.CharField(
        max_length=10, choices=ItemStatus.choices, default=ItemStatus.PENDING
    )
    sent_to_kitchen_at = models.DateTimeField(null=True, blank=True)
    prepared_at = models.DateTimeField(null=True, blank=True)
    served_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["position"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "position"], name="unique_item_position_per_order"
            ),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.name} for Order {self.order.order_number}"

    @property
    def selected_variant(self):
        if not self.variant_name:
            return None
        return {"name": self.variant_name, "price_modifier": self.variant_price_modifier}

    @property
    def selected_addons(self):
        return [
            {"name": addon["name"], "price": Decimal(str(addon["price"]))}
            for addon in (self.addons or [])
        ]
