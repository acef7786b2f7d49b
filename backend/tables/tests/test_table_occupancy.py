"""
Table Occupancy Reconciliation Tests

A table's displayed status is recomputed from same-day dine-in orders on
every read. These tests verify that stale stored statuses are corrected
in both directions and that reads never write.
"""
import pytest
from datetime import timedelta
from django.utils import timezone

from core_backend.exceptions import NotFoundError
from orders.models import Order
from orders.services import OrderService
from payments.services import PaymentLedgerService
from tables.models import Table
from tables.services import TableOccupancyReconciler, TableService, effective_status


class TestEffectiveStatus:
    """Pure status resolution, no database."""

    @pytest.mark.parametrize(
        "stored, occupied, expected",
        [
            ("available", False, "available"),
            ("available", True, "occupied"),
            ("occupied", True, "occupied"),
            ("occupied", False, "available"),
            ("reserved", False, "reserved"),
            ("reserved", True, "reserved"),
            ("cleaning", False, "cleaning"),
            ("cleaning", True, "cleaning"),
        ],
    )
    def test_resolution(self, stored, occupied, expected):
        assert effective_status(stored, occupied) == expected


@pytest.mark.django_db
class TestReconciliation:
    """Stored status versus live orders"""

    def test_stale_occupied_heals_to_available(self, table_factory):
        """
        CRITICAL: A table left 'occupied' with no live order reads as available

        Business Impact: Ghost-occupied tables cannot be seated by hosts
        """
        stale = table_factory("T9", status=Table.TableStatus.OCCUPIED)

        reconciled = TableService.get_table(stale.pk)

        assert reconciled.status == "available"
        assert reconciled.occupied is False
        stale.refresh_from_db()
        assert stale.status == Table.TableStatus.OCCUPIED, "Reads must not write the stored status"

    def test_order_closed_behind_the_tables_back(self, scenario_order, table):
        """An order closed without releasing its table no longer occupies it."""
        Order.objects.filter(pk=scenario_order.pk).update(status=Order.OrderStatus.COMPLETED)

        assert TableService.get_table(table.pk).status == "available"

    def test_stored_available_with_live_order_reads_occupied(self, scenario_order, table):
        Table.objects.filter(pk=table.pk).update(status=Table.TableStatus.AVAILABLE)

        reconciled = TableService.get_table(table.pk)
        assert reconciled.status == "occupied"
        assert reconciled.occupied is True

    def test_paid_order_still_occupies(self, scenario_order, table, pay_in_full):
        pay_in_full(scenario_order)
        assert TableService.get_table(table.pk).status == "occupied"

    def test_reserved_wins_over_orders(self, scenario_order, table):
        Table.objects.filter(pk=table.pk).update(status=Table.TableStatus.RESERVED)

        reconciled = TableService.get_table(table.pk)
        assert reconciled.status == "reserved"
        assert reconciled.occupied is True

    def test_previous_business_day_does_not_occupy(self, scenario_order, table):
        yesterday = timezone.localdate() - timedelta(days=1)
        Order.objects.filter(pk=scenario_order.pk).update(business_date=yesterday)

        assert TableService.get_table(table.pk).status == "available"

    def test_occupied_table_ids(self, order_factory, table, second_table, branch_id):
        order_factory(table=table)
        order_factory()  # takeaway

        assert TableOccupancyReconciler.occupied_table_ids(branch_id) == {table.pk}

    def test_list_tables_reconciles_every_table(self, scenario_order, table, table_factory, branch_id):
        table_factory("T9", status=Table.TableStatus.OCCUPIED)

        statuses = {entry.table.table_number: entry.status for entry in TableService.list_tables(branch_id)}
        assert statuses == {"T1": "occupied", "T9": "available"}

    def test_list_tables_is_branch_scoped(self, table, table_factory, other_branch_id, branch_id):
        table_factory("X1", branch=other_branch_id)

        assert [e.table.table_number for e in TableService.list_tables(branch_id)] == ["T1"]

    def test_without_branch_scope_stored_status_is_returned(self, table_factory):
        stale = table_factory("T9", status=Table.TableStatus.OCCUPIED)

        [entry] = TableOccupancyReconciler.reconcile([stale])
        assert entry.status == Table.TableStatus.OCCUPIED

    def test_inactive_tables_are_hidden(self, table_factory, branch_id):
        retired = table_factory("OLD", is_active=False)

        assert TableService.list_tables(branch_id) == []
        with pytest.raises(NotFoundError):
            TableService.get_table(retired.pk)

    def test_seating_on_reserved_table_clears_reservation(self, table_factory, order_factory):
        now = timezone.now()
        reserved = table_factory(
            "R1",
            status=Table.TableStatus.RESERVED,
            reserved_for=now,
            reserved_until=now + timedelta(hours=1),
            reserved_by={"name": "Ada", "phone": "", "party_size": 2},
        )
        order_factory(table=reserved)

        reserved.refresh_from_db()
        assert reserved.status == Table.TableStatus.OCCUPIED
        assert reserved.reserved_by is None
        assert reserved.reserved_until is None


@pytest.mark.django_db
class TestOccupancyAfterLifecycle:
    """Every order path that ends a visit leaves the table available."""

    def test_cancelled_unpaid_order(self, scenario_order, table):
        OrderService.update_status(scenario_order.pk, "cancelled")
        assert TableService.get_table(table.pk).status == "available"

    def test_completed_paid_order(self, scenario_order, table):
        PaymentLedgerService.add_payment(scenario_order.pk, "card", scenario_order.total)
        OrderService.update_status(scenario_order.pk, "completed")
        assert TableService.get_table(table.pk).status == "available"

    def test_deleted_pending_order(self, scenario_order, table):
        OrderService.delete_order(scenario_order.pk)
        assert TableService.get_table(table.pk).status == "available"
