"""
Table occupancy reconciliation.

A table's stored status drifts whenever an order is completed or cancelled
without the table being released. Instead of trusting it, every read
recomputes occupancy from the same-day dine-in orders that reference the
table:

* open tabs: non-terminal orders not yet paid
* paid:      non-terminal orders already paid (guest may still be seated)

Split parents are left out; their children carry the occupancy. Completed
and cancelled orders never occupy a table.
"""
from dataclasses import dataclass
from typing import Iterable, List, Optional, Set
import logging

from django.utils import timezone

from orders.models import Order
from tables.models import Table

logger = logging.getLogger(__name__)

Status = Table.TableStatus


@dataclass(frozen=True)
class ReconciledTable:
    table: Table
    status: str
    occupied: bool


def effective_status(stored_status: str, occupied: bool) -> str:
    """
    >>> effective_status("occupied", False)
    'available'
    >>> effective_status("available", True)
    'occupied'
    >>> effective_status("reserved", True)
    'reserved'
    """
    if stored_status in Table.MANUAL_STATUSES:
        return stored_status
    if occupied:
        return Status.OCCUPIED.value
    if stored_status == Status.OCCUPIED:
        return Status.AVAILABLE.value
    return stored_status


class TableOccupancyReconciler:

    @staticmethod
    def occupying_orders(branch_id, day=None, table_ids: Optional[Iterable] = None):
        """Same-day dine-in orders that keep their table occupied."""
        day = day or timezone.localdate()
        queryset = (
            Order.objects.for_branch_day(branch_id, day)
            .filter(order_type=Order.OrderType.DINE_IN, table__isnull=False)
            .non_terminal()
            .exclude_split_parents()
        )
        if table_ids is not None:
            queryset = queryset.filter(table_id__in=list(table_ids))
        return queryset

    @staticmethod
    def occupied_table_ids(branch_id, day=None, table_ids: Optional[Iterable] = None) -> Set:
        orders = TableOccupancyReconciler.occupying_orders(branch_id, day, table_ids)

        open_tabs = orders.exclude(payment_status=Order.PaymentStatus.PAID).values_list(
            "table_id", flat=True
        )
        paid = orders.filter(payment_status=Order.PaymentStatus.PAID).values_list(
            "table_id", flat=True
        )
        return set(open_tabs) | set(paid)

    @staticmethod
    def reconcile(tables: Iterable[Table], branch_id=None) -> List[ReconciledTable]:
        """
        Pair each table with its effective status.

        Computed fresh on every call. Without a branch scope the occupancy
        queries cannot be bounded, so stored statuses are returned as-is.
        """
        tables = list(tables)
        if not tables:
            return []

        if branch_id is None:
            logger.warning(
                f"Reconciling {len(tables)} tables without a branch scope; returning stored statuses"
            )
            return [
                ReconciledTable(table=t, status=t.status, occupied=t.status == Status.OCCUPIED)
                for t in tables
            ]

        occupied_ids = TableOccupancyReconciler.occupied_table_ids(
            branch_id, table_ids=[t.pk for t in tables]
        )

        reconciled = []
        for table in tables:
            occupied = table.pk in occupied_ids
            status = effective_status(table.status, occupied)
            if status != table.status:
                logger.info(
                    f"Table {table.table_number} stored as {table.status}, effective {status}"
                )
            reconciled.append(ReconciledTable(table=table, status=status, occupied=occupied))
        return reconciled
