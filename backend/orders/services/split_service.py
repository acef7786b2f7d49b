from collections import defaultdict
from django.db import transaction
from django.utils import timezone
import logging

from core_backend.concurrency import conditional_update, retry_on_conflict
from core_backend.config import engine_settings
from core_backend.exceptions import AlreadySplitError, InvalidStateError, ValidationFailedError
from orders.calculators import PricedLine, price_order
from orders.models import Order, OrderItem
from orders.state_machine import OrderStateMachine
from payments.money import quantize
from .order_service import OrderService, OrderItemFactory

logger = logging.getLogger(__name__)


class OrderSplitService:
    """Split billing: partition an order's lines into separately payable child orders."""

    @staticmethod
    def _parse_groups(items, splits):
        """
        Normalise ``[{"item_indices": [...], "quantities": {index: qty}}]`` into
        a list of ``[(item, quantity), ...]`` per group. Across all groups every
        line must be allocated exactly its full quantity.
        """
        if not splits:
            raise ValidationFailedError("At least one split group is required", field="splits")

        allocated = defaultdict(int)
        groups = []
        for group_number, split in enumerate(splits, start=1):
            indices = split.get("item_indices") or []
            if not indices:
                raise ValidationFailedError(
                    f"Split group {group_number} has no items", field="splits"
                )
            try:
                quantities = {
                    int(index): qty for index, qty in (split.get("quantities") or {}).items()
                }
            except (TypeError, ValueError):
                raise ValidationFailedError(
                    f"Split group {group_number} has a malformed quantities map", field="quantities"
                ) from None

            lines = []
            seen = set()
            for index in indices:
                if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(items):
                    raise ValidationFailedError(
                        f"Split group {group_number} references unknown item index {index}",
                        field="item_indices",
                    )
                if index in seen:
                    raise ValidationFailedError(
                        f"Split group {group_number} lists item {index} twice",
                        field="item_indices",
                    )
                seen.add(index)

                item = items[index]
                quantity = quantities.get(index, item.quantity)
                if isinstance(quantity, bool) or not isinstance(quantity, int) or not 1 <= quantity <= item.quantity:
                    raise ValidationFailedError(
                        f"Quantity {quantity} for '{item.name}' must be between 1 and {item.quantity}",
                        field="quantities",
                    )
                allocated[index] += quantity
                if allocated[index] > item.quantity:
                    raise ValidationFailedError(
                        f"'{item.name}' is allocated {allocated[index]} times but the order has {item.quantity}",
                        field="quantities",
                    )
                lines.append((item, quantity))
            groups.append(lines)

        for index, item in enumerate(items):
            if allocated[index] != item.quantity:
                raise ValidationFailedError(
                    f"'{item.name}' is allocated {allocated[index]} of {item.quantity}; "
                    f"every item must go to a split order",
                    field="quantities",
                )
        return groups

    @staticmethod
    def _child_line(item, quantity, currency) -> PricedLine:
        return PricedLine(
            menu_item_id=str(item.menu_item_id),
            name=item.name,
            base_price=item.base_price,
            quantity=quantity,
            unit_price=item.unit_price,
            total_price=quantize(currency, item.unit_price * quantity),
            variant=item.selected_variant,
            addons=tuple(item.selected_addons),
        )

    @staticmethod
    def _read_order(order_id) -> Order:
        return OrderService.get_order(order_id)

    @staticmethod
    @retry_on_conflict()
    def split_order(order_id, splits, actor=None):
        """
        Create one child order per split group.

        Children are priced at the parent's tax and service-charge rates and
        start unpaid, in the parent's status, at the parent's table. The
        parent keeps its items and totals, is flagged ``is_split`` and drops
        out of revenue and occupancy queries.

        Returns:
            (parent, [children]) in child-number order

        Raises:
            InvalidStateError: terminal parent or payments already recorded
            AlreadySplitError: the order is a split parent or a split child
            ValidationFailedError: malformed split groups, or items left out
            ConflictError: the order kept changing across every retry
        """
        order = OrderSplitService._read_order(order_id)
        OrderStateMachine.ensure_mutable(order, action="split")

        if order.is_split:
            raise AlreadySplitError(order.order_number)

        if order.paid_amount > 0 or order.payments.exists():
            raise InvalidStateError(
                f"Order {order.order_number} already has payments and cannot be split",
                order_id=order.pk,
            )

        items = list(order.items.all())
        groups = OrderSplitService._parse_groups(items, splits)
        currency = engine_settings.currency
        now = timezone.now()

        children = []
        with transaction.atomic():
            # Claims the parent; a concurrent split of the same order loses here.
            conditional_update(Order.objects, order.pk, order.version, is_split=True, updated_at=now)

            for number, lines in enumerate(groups, start=1):
                priced = [OrderSplitService._child_line(item, qty, currency) for item, qty in lines]
                totals = price_order(
                    priced,
                    tax_rate=order.tax_rate,
                    service_charge_rate=order.service_charge_rate,
                    currency=currency,
                )
                child = Order(
                    order_number=f"{order.order_number}-{number}",
                    company_id=order.company_id,
                    branch_id=order.branch_id,
                    business_date=order.business_date,
                    order_type=order.order_type,
                    table_id=order.table_id,
                    table_number=order.table_number,
                    waiter_id=order.waiter_id,
                    customer_id=order.customer_id,
                    guest_name=order.guest_name,
                    guest_phone=order.guest_phone,
                    guest_email=order.guest_email,
                    status=order.status,
                    confirmed_at=order.confirmed_at,
                    tax_rate=order.tax_rate,
                    service_charge_rate=order.service_charge_rate,
                    subtotal=totals.subtotal,
                    tax_amount=totals.tax_amount,
                    service_charge_amount=totals.service_charge_amount,
                    total=totals.total,
                    remaining_amount=totals.total,
                    is_split=True,
                    parent_order=order,
                )
                child.save()

                child_items = []
                for position, ((item, _qty), line) in enumerate(zip(lines, priced)):
                    child_item = OrderItemFactory.from_priced_line(child, position, line, item.notes)
                    # Kitchen progress carries over to the child line.
                    child_item.status = item.status
                    child_item.sent_to_kitchen_at = item.sent_to_kitchen_at
                    child_item.prepared_at = item.prepared_at
                    child_item.served_at = item.served_at
                    child_items.append(child_item)
                OrderItem.objects.bulk_create(child_items)
                children.append(child)

        logger.info(
            f"Split order {order.order_number} into {len(children)} orders "
            f"({', '.join(c.order_number for c in children)}) by {actor}"
        )
        return (
            OrderService.get_order(order.pk),
            [OrderService.get_order(child.pk) for child in children],
        )
