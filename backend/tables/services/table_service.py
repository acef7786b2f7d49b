from collections import Counter
from datetime import datetime, timedelta
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone
import logging

from core_backend.concurrency import conditional_update, retry_on_conflict
from core_backend.config import engine_settings
from core_backend.exceptions import (
    ConflictError,
    NotAvailableError,
    NotFoundError,
    NotReservedError,
    ValidationFailedError,
)
from orders.commands import OccupyTable, ReleaseTable
from orders.models import Order
from tables.models import Table
from tables.notification_service import TableNotificationService
from tables.serializers import table_payload
from .occupancy_service import ReconciledTable, TableOccupancyReconciler

logger = logging.getLogger(__name__)

Status = Table.TableStatus

RELEASE_CANCELLATION_REASON = "Table released - orders cancelled automatically"

POINTERS_CLEARED = {"current_order_id": None, "occupied_by": None, "occupied_at": None}
RESERVATION_CLEARED = {
    "reserved_for": None,
    "reserved_until": None,
    "reserved_by": None,
    "reservation_notes": "",
}


class TableService:
    """
    The only writer of Table rows.

    Order services ask for table changes through OccupyTable / ReleaseTable
    commands; clients change tables through the manual operations below.
    Every operation returns the table with its reconciled status and
    broadcasts it to the branch's floor plan.
    """

    # --- reads ---

    @staticmethod
    def _load(table_id) -> Table:
        try:
            return Table.objects.get(pk=table_id, is_active=True)
        except (Table.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Table", table_id) from None

    @staticmethod
    def _reconciled(table) -> ReconciledTable:
        return TableOccupancyReconciler.reconcile([table], table.branch_id)[0]

    @staticmethod
    def get_table(table_id) -> ReconciledTable:
        return TableService._reconciled(TableService._load(table_id))

    @staticmethod
    def list_tables(branch_id=None):
        """
        Active tables with effective statuses, computed fresh on every call.

        Without ``branch_id`` every table is returned with its stored status.
        """
        try:
            tables = Table.objects.filter(is_active=True)
            if branch_id:
                tables = tables.filter(branch_id=branch_id)
            tables = list(tables)
        except (DjangoValidationError, ValueError):
            raise ValidationFailedError(f"'{branch_id}' is not a valid branch id", field="branch_id") from None
        return TableOccupancyReconciler.reconcile(tables, branch_id or None)

    @staticmethod
    def table_stats(branch_id) -> dict:
        if not branch_id:
            raise ValidationFailedError("branch_id is required for table stats", field="branch_id")

        reconciled = TableService.list_tables(branch_id)
        counts = Counter(entry.status for entry in reconciled)
        total = len(reconciled)
        occupied = counts[Status.OCCUPIED]
        return {
            "total": total,
            "available": counts[Status.AVAILABLE],
            "occupied": occupied,
            "reserved": counts[Status.RESERVED],
            "cleaning": counts[Status.CLEANING],
            "total_capacity": sum(entry.table.capacity for entry in reconciled),
            "occupancy_rate": round(occupied * 100 / total, 2) if total else 0.0,
        }

    # --- writes ---

    @staticmethod
    def _write(table, **changes):
        changes.setdefault("updated_at", timezone.now())
        conditional_update(Table.objects, table.pk, table.version, **changes)

    @staticmethod
    def _publish(table_id) -> ReconciledTable:
        reconciled = TableService._reconciled(Table.objects.get(pk=table_id))
        TableNotificationService.table_status_changed(
            reconciled.table.branch_id, table_payload(reconciled)
        )
        return reconciled

    @staticmethod
    def execute(command):
        """Apply a table command emitted by the order lifecycle."""
        if isinstance(command, OccupyTable):
            return TableService.occupy_table(
                command.table_id, order_id=command.order_id, waiter_id=command.waiter_id
            )
        if isinstance(command, ReleaseTable):
            return TableService.release_table(command.table_id, order_id=command.order_id)
        raise TypeError(f"Unsupported table command: {command!r}")

    @staticmethod
    @retry_on_conflict()
    def occupy_table(table_id, order_id=None, waiter_id=None) -> ReconciledTable:
        """Seat an order: stored status occupied, pointers set, reservation cleared."""
        table = TableService._load(table_id)
        now = timezone.now()
        already_seated = table.status == Status.OCCUPIED and table.occupied_at is not None

        with transaction.atomic():
            TableService._write(
                table,
                status=Status.OCCUPIED,
                current_order_id=order_id,
                occupied_by=waiter_id,
                occupied_at=table.occupied_at if already_seated else now,
                updated_at=now,
                **RESERVATION_CLEARED,
            )

        logger.info(f"Table {table.table_number} occupied by order {order_id} (waiter {waiter_id})")
        return TableService._publish(table.pk)

    @staticmethod
    @retry_on_conflict()
    def release_table(table_id, order_id=None, actor=None) -> ReconciledTable:
        """
        Free a table.

        Explicit release (no ``order_id``) closes out the table for the day:
        open tabs are cancelled and paid orders are detached, keeping their
        table number.

        Order-triggered release detaches that order if it was paid and frees
        the table only when no other open order remains on it.
        """
        table = TableService._load(table_id)
        if order_id is None:
            TableService._release_explicit(table, actor)
        else:
            TableService._release_for_order(table, order_id)
        return TableService._publish(table.pk)

    @staticmethod
    def _release_explicit(table, actor):
        now = timezone.now()
        # Every open order at the table, split parents included.
        orders = (
            Order.objects.for_branch_day(table.branch_id, timezone.localdate())
            .filter(order_type=Order.OrderType.DINE_IN, table_id=table.pk)
            .non_terminal()
        )

        with transaction.atomic():
            TableService._write(
                table,
                status=Status.AVAILABLE,
                updated_at=now,
                **POINTERS_CLEARED,
                **RESERVATION_CLEARED,
            )
            cancelled = orders.exclude(payment_status=Order.PaymentStatus.PAID).update(
                status=Order.OrderStatus.CANCELLED,
                cancelled_at=now,
                cancellation_reason=RELEASE_CANCELLATION_REASON,
                updated_at=now,
                version=F("version") + 1,
            )
            detached = orders.filter(payment_status=Order.PaymentStatus.PAID).update(
                table=None,
                table_number=table.table_number,
                updated_at=now,
                version=F("version") + 1,
            )

        logger.info(
            f"Table {table.table_number} released by {actor}: "
            f"{cancelled} open order(s) cancelled, {detached} paid order(s) detached"
        )

    @staticmethod
    def _release_for_order(table, order_id):
        now = timezone.now()

        with transaction.atomic():
            order = Order.objects.filter(pk=order_id).first()
            if order is not None and order.table_id == table.pk and (
                order.payment_status == Order.PaymentStatus.PAID
                or order.status == Order.OrderStatus.COMPLETED
            ):
                Order.objects.filter(pk=order.pk).update(
                    table=None,
                    table_number=order.table_number or table.table_number,
                    updated_at=now,
                    version=F("version") + 1,
                )

            remaining = (
                TableOccupancyReconciler.occupying_orders(table.branch_id, table_ids=[table.pk])
                .exclude(pk=order_id)
                .order_by("created_at")
                .first()
            )

            if remaining is not None:
                if table.current_order_id is None or str(table.current_order_id) == str(order_id):
                    TableService._write(table, current_order_id=remaining.pk, updated_at=now)
                logger.info(
                    f"Table {table.table_number} stays occupied: order {remaining.order_number} still open"
                )
                return

            if table.status == Status.OCCUPIED:
                TableService._write(table, status=Status.AVAILABLE, updated_at=now, **POINTERS_CLEARED)
            elif table.current_order_id is not None:
                TableService._write(table, updated_at=now, **POINTERS_CLEARED)

        logger.info(f"Table {table.table_number} released after order {order_id}")

    @staticmethod
    def update_status(table_id, status, actor=None) -> ReconciledTable:
        """
        Manual status change from the floor.

        ``available`` is an explicit release and ``cleaning`` marks the table
        as being reset. Reservations go through ``reserve_table``; tables
        become occupied by seating a dine-in order.
        """
        if status not in Status.values:
            raise ValidationFailedError(f"'{status}' is not a valid table status.", field="status")
        if status == Status.RESERVED:
            raise ValidationFailedError(
                "Use the reservation endpoint to reserve a table", field="status"
            )
        if status == Status.OCCUPIED:
            raise ValidationFailedError(
                "Tables become occupied by seating a dine-in order", field="status"
            )

        if status == Status.AVAILABLE:
            return TableService.release_table(table_id, actor=actor)
        return TableService._mark_cleaning(table_id, actor=actor)

    @staticmethod
    @retry_on_conflict()
    def _mark_cleaning(table_id, actor=None) -> ReconciledTable:
        table = TableService._load(table_id)
        with transaction.atomic():
            TableService._write(table, status=Status.CLEANING, **POINTERS_CLEARED)
        logger.info(f"Table {table.table_number} set to cleaning by {actor}")
        return TableService._publish(table.pk)

    @staticmethod
    def _validate_window(reserved_for, reserved_until, now):
        if not isinstance(reserved_for, datetime) or not isinstance(reserved_until, datetime):
            raise ValidationFailedError("Reservation start and end must be datetimes", field="reserved_for")
        if timezone.is_naive(reserved_for):
            reserved_for = timezone.make_aware(reserved_for)
        if timezone.is_naive(reserved_until):
            reserved_until = timezone.make_aware(reserved_until)

        if reserved_until <= reserved_for:
            raise ValidationFailedError(
                "Reservation end must be after its start", field="reserved_until"
            )
        minimum = timedelta(minutes=engine_settings.min_reservation_minutes)
        if reserved_until - reserved_for < minimum:
            raise ValidationFailedError(
                f"Reservations must last at least {engine_settings.min_reservation_minutes} minutes",
                field="reserved_until",
            )
        if reserved_until <= now:
            raise ValidationFailedError("Reservation window has already ended", field="reserved_until")
        return reserved_for, reserved_until

    @staticmethod
    @retry_on_conflict()
    def reserve_table(
        table_id,
        name,
        party_size,
        reserved_for,
        reserved_until,
        phone="",
        notes="",
        actor=None,
    ) -> ReconciledTable:
        """
        Hold an available table for a guest.

        Raises:
            ValidationFailedError: missing guest name, bad party size or window
            NotAvailableError: the table's effective status is not available
        """
        if not name or not str(name).strip():
            raise ValidationFailedError("Reservation requires a guest name", field="name")
        if isinstance(party_size, bool) or not isinstance(party_size, int) or party_size < 1:
            raise ValidationFailedError("Party size must be at least 1", field="party_size")

        now = timezone.now()
        reserved_for, reserved_until = TableService._validate_window(reserved_for, reserved_until, now)

        table = TableService._load(table_id)
        current = TableService._reconciled(table)
        if current.status != Status.AVAILABLE:
            raise NotAvailableError(table.table_number, current.status)

        with transaction.atomic():
            TableService._write(
                table,
                status=Status.RESERVED,
                reserved_for=reserved_for,
                reserved_until=reserved_until,
                reserved_by={"name": str(name).strip(), "phone": phone or "", "party_size": party_size},
                reservation_notes=notes or "",
                updated_at=now,
                **POINTERS_CLEARED,
            )

        logger.info(
            f"Table {table.table_number} reserved for {name} ({party_size}) "
            f"{reserved_for:%Y-%m-%d %H:%M}-{reserved_until:%H:%M} by {actor}"
        )
        return TableService._publish(table.pk)

    @staticmethod
    @retry_on_conflict()
    def cancel_reservation(table_id, actor=None) -> ReconciledTable:
        table = TableService._load(table_id)
        if table.status != Status.RESERVED:
            raise NotReservedError(table.table_number)

        with transaction.atomic():
            TableService._write(table, status=Status.AVAILABLE, **RESERVATION_CLEARED)

        logger.info(f"Reservation on table {table.table_number} cancelled by {actor}")
        return TableService._publish(table.pk)

    @staticmethod
    def expire_reservations(now=None) -> int:
        """
        Return reserved tables whose window has ended to available.

        A table changed concurrently is skipped; the next sweep picks it up
        if it is still reserved.
        """
        now = now or timezone.now()
        expired = 0
        for table in Table.objects.filter(status=Status.RESERVED, reserved_until__lte=now):
            try:
                with transaction.atomic():
                    TableService._write(table, status=Status.AVAILABLE, **RESERVATION_CLEARED)
            except ConflictError:
                logger.warning(f"Table {table.table_number} changed during reservation sweep; skipping")
                continue
            expired += 1
            logger.info(f"Reservation on table {table.table_number} expired at {table.reserved_until}")
            TableService._publish(table.pk)
        return expired
