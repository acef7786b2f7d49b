import uuid
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Table(models.Model):
    """
    A physical table in a branch.

    ``status`` is the stored, advisory status. Only ``reserved`` and
    ``cleaning`` are authoritative here; whether a live order occupies the
    table is recomputed from orders on every read
    (see tables.services.occupancy_service).
    """

    class TableStatus(models.TextChoices):
        AVAILABLE = "available", _("Available")
        OCCUPIED = "occupied", _("Occupied")
        RESERVED = "reserved", _("Reserved")
        CLEANING = "cleaning", _("Cleaning")

    MANUAL_STATUSES = (TableStatus.RESERVED, TableStatus.CLEANING)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    version = models.PositiveIntegerField(default=1)
    branch_id = models.UUIDField(db_index=True)
    table_number = models.CharField(max_length=20)
    capacity = models.PositiveSmallIntegerField(default=4)
    section = models.CharField(max_length=50, blank=True, default="")
    is_active = models.BooleanField(default=True)

    status = models.CharField(
        max_length=10, choices=TableStatus.choices, default=TableStatus.AVAILABLE
    )

    # Convenience pointers, not authoritative
    current_order_id = models.UUIDField(null=True, blank=True)
    occupied_by = models.CharField(max_length=64, blank=True, null=True)
    occupied_at = models.DateTimeField(null=True, blank=True)

    # Reservation sub-state
    reserved_for = models.DateTimeField(null=True, blank=True)
    reserved_until = models.DateTimeField(null=True, blank=True)
    reserved_by = models.JSONField(
        null=True,
        blank=True,
        help_text=_("Guest holding the reservation: {name, phone, party_size}."),
    )
    reservation_notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["branch_id", "table_number"]
        verbose_name = _("Table")
        verbose_name_plural = _("Tables")
        indexes = [
            models.Index(fields=["branch_id", "status"], name="table_branch_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["branch_id", "table_number"], name="unique_table_number_per_branch"
            ),
        ]

    def __str__(self):
        return f"Table {self.table_number} ({self.status})"
