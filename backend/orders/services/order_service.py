from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
import logging

from core_backend.concurrency import conditional_update, retry_on_conflict
from core_backend.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationFailedError,
)
from orders import commands as table_commands
from orders.calculators import price_line, price_order
from orders.commands import OccupyTable, ReleaseTable
from orders.models import Order, OrderItem
from orders.state_machine import OrderStateMachine
from products.services import CatalogService

logger = logging.getLogger(__name__)


class OrderService:
    """Core service for order lifecycle management - creating, advancing, deleting orders."""

    @staticmethod
    def get_order(order_id) -> Order:
        """
        Load an order with its items and payments.

        Raises:
            NotFoundError: unknown or malformed id
        """
        try:
            return (
                Order.objects.select_related("table", "parent_order")
                .prefetch_related("items", "payments", "split_orders")
                .get(pk=order_id)
            )
        except (Order.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("Order", order_id) from None

    @staticmethod
    def active_orders_for_branch(branch_id):
        """Every non-terminal order of a branch, newest first."""
        return (
            Order.objects.filter(branch_id=branch_id)
            .non_terminal()
            .select_related("table")
            .prefetch_related("items", "payments", "split_orders")
            .order_by("-created_at")
        )

    @staticmethod
    def open_orders_for_table(table_id):
        """Non-terminal orders seated at a table, split parents excluded."""
        return (
            Order.objects.filter(table_id=table_id)
            .non_terminal()
            .exclude_split_parents()
            .prefetch_related("items", "payments")
            .order_by("created_at")
        )

    @staticmethod
    def create_order(
        branch_id,
        order_type: str,
        items: list,
        waiter_id=None,
        company_id=None,
        table_id=None,
        customer_id=None,
        guest_name: str = "",
        guest_phone: str = "",
        guest_email: str = "",
        notes: str = "",
        tax_rate=0,
        service_charge_rate=0,
        discount_amount=0,
        delivery_fee=0,
    ) -> Order:
        """
        Price and persist a new order.

        ``items`` is a list of ``{"menu_item_id", "quantity", "variant"?,
        "addons"?, "notes"?}``. Prices are always taken from the catalog.
        A dine-in order occupies its table once the order is saved.

        Raises:
            ValidationFailedError: missing branch, bad type, empty items,
                dine-in without a table, table of another branch
            NotFoundError: unknown table or menu item
        """
        # Local import: tables.models references orders.Order
        from tables.models import Table

        if not branch_id:
            raise ValidationFailedError("branch_id is required to create an order", field="branch_id")

        if order_type not in Order.OrderType.values:
            raise ValidationFailedError(
                f"'{order_type}' is not a valid order type.", field="order_type"
            )

        if not items:
            raise ValidationFailedError("An order needs at least one item", field="items")

        table = None
        if order_type == Order.OrderType.DINE_IN:
            if not table_id:
                raise ValidationFailedError("Dine-in orders require a table", field="table_id")
            try:
                table = Table.objects.get(pk=table_id, is_active=True)
            except (Table.DoesNotExist, DjangoValidationError, ValueError):
                raise NotFoundError("Table", table_id) from None
            if str(table.branch_id) != str(branch_id):
                raise ValidationFailedError(
                    f"Table {table.table_number} belongs to another branch", field="table_id"
                )
        elif table_id:
            raise ValidationFailedError(
                f"{order_type} orders cannot be seated at a table", field="table_id"
            )

        priced_lines = []
        for item in items:
            menu_item = CatalogService.get_menu_item(item.get("menu_item_id"))
            priced_lines.append(
                (
                    price_line(
                        menu_item,
                        item.get("quantity", 1),
                        variant_name=item.get("variant"),
                        addon_names=item.get("addons") or (),
                    ),
                    item.get("notes", "") or "",
                )
            )

        totals = price_order(
            [line for line, _notes in priced_lines],
            tax_rate=tax_rate,
            service_charge_rate=service_charge_rate,
            discount_amount=discount_amount,
            delivery_fee=delivery_fee,
        )

        with transaction.atomic():
            order = Order(
                company_id=company_id,
                branch_id=branch_id,
                order_type=order_type,
                table=table,
                table_number=table.table_number if table else "",
                waiter_id=str(waiter_id) if waiter_id is not None else None,
                customer_id=customer_id,
                guest_name=guest_name or "",
                guest_phone=guest_phone or "",
                guest_email=guest_email or "",
                notes=notes or "",
                tax_rate=tax_rate or 0,
                service_charge_rate=service_charge_rate or 0,
                subtotal=totals.subtotal,
                tax_amount=totals.tax_amount,
                service_charge_amount=totals.service_charge_amount,
                discount_amount=totals.discount_amount,
                delivery_fee=totals.delivery_fee,
                total=totals.total,
                remaining_amount=totals.total,
            )
            order.save()

            OrderItem.objects.bulk_create(
                [
                    OrderItemFactory.from_priced_line(order, position, line, line_notes)
                    for position, (line, line_notes) in enumerate(priced_lines)
                ]
            )

        logger.info(
            f"Created {order_type} order {order.order_number} for branch {branch_id} "
            f"({len(priced_lines)} items, total {order.total})"
        )

        if table is not None:
            table_commands.dispatch(
                [OccupyTable(table_id=str(table.pk), order_id=str(order.pk), waiter_id=order.waiter_id)]
            )

        return OrderService.get_order(order.pk)

    @staticmethod
    @retry_on_conflict()
    def update_status(order_id, new_status: str, actor=None, reason=None) -> Order:
        """
        Move an order through its lifecycle.

        Completing requires full settlement. Completing or cancelling a
        seated order releases its table after the write.
        """
        order = OrderService.get_order(order_id)
        previous_status = order.status

        child_statuses = None
        if order.is_split_parent:
            child_statuses = list(order.split_orders.values_list("status", flat=True))

        plan = OrderStateMachine.plan(
            order, new_status, reason=reason, split_child_statuses=child_statuses
        )

        with transaction.atomic():
            conditional_update(Order.objects, order.pk, order.version, **plan.changes)
            if plan.item_status:
                from_status, to_status = plan.item_status
                OrderItem.objects.filter(order_id=order.pk, status=from_status).update(
                    status=to_status, **plan.item_changes
                )

        logger.info(
            f"Order {order.order_number}: {previous_status} -> {new_status} (by {actor})"
        )
        table_commands.dispatch(plan.commands)
        return OrderService.get_order(order.pk)

    @staticmethod
    @retry_on_conflict()
    def update_item_status(order_id, item_index: int, new_status: str) -> Order:
        """Advance the preparation status of one line, addressed by its index."""
        order = OrderService.get_order(order_id)
        items = list(order.items.all())
        if not isinstance(item_index, int) or item_index < 0 or item_index >= len(items):
            raise ValidationFailedError(
                f"Order {order.order_number} has no item at index {item_index}",
                field="item_index",
            )
        item = items[item_index]

        changes = OrderStateMachine.plan_item(order, item, new_status)

        with transaction.atomic():
            # Bumping the order version serialises item updates with other order writes.
            conditional_update(Order.objects, order.pk, order.version, updated_at=timezone.now())
            updated = OrderItem.objects.filter(pk=item.pk, status=item.status).update(**changes)
            if updated == 0:
                raise ConflictError(f"Item {item_index} of order {order.order_number} changed concurrently")

        logger.info(
            f"Order {order.order_number} item {item_index} ({item.name}): {item.status} -> {new_status}"
        )
        return OrderService.get_order(order.pk)

    @staticmethod
    @retry_on_conflict()
    def delete_order(order_id) -> None:
        """
        Hard-delete a pending or cancelled order.

        Deleting a pending dine-in order frees its table.
        """
        order = OrderService.get_order(order_id)

        if order.status not in (Order.OrderStatus.PENDING, Order.OrderStatus.CANCELLED):
            raise InvalidStateError(
                f"Only pending or cancelled orders can be deleted; order {order.order_number} is {order.status}",
                order_id=order.pk,
            )
        if order.payments.exists():
            raise InvalidStateError(
                f"Order {order.order_number} has recorded payments and cannot be deleted",
                order_id=order.pk,
            )
        if order.split_orders.exists():
            raise InvalidStateError(
                f"Order {order.order_number} has split orders; delete those first",
                order_id=order.pk,
            )

        commands = []
        if order.status == Order.OrderStatus.PENDING and order.table_id:
            commands.append(ReleaseTable(table_id=str(order.table_id), order_id=str(order.pk)))

        with transaction.atomic():
            deleted, _by_model = Order.objects.filter(pk=order.pk, version=order.version).delete()
            if deleted == 0:
                raise ConflictError(f"Order {order.order_number} changed before it could be deleted")

        logger.info(f"Deleted order {order.order_number} ({order.status})")
        table_commands.dispatch(commands)


class OrderItemFactory:
    @staticmethod
    def from_priced_line(order, position, line, notes="") -> OrderItem:
        variant = line.variant or {}
        return OrderItem(
            order=order,
            position=position,
            menu_item_id=line.menu_item_id,
            name=line.name,
            base_price=line.base_price,
            quantity=line.quantity,
            variant_name=variant.get("name"),
            variant_price_modifier=variant.get("price_modifier"),
            addons=[{"name": a["name"], "price": str(a["price"])} for a in line.addons],
            unit_price=line.unit_price,
            total_price=line.total_price,
            notes=notes,
        )
