"""
Order lifecycle rules.

``OrderStateMachine.plan`` validates a requested transition against an order
snapshot and describes the resulting writes; it never touches the database.
The order service applies the plan under a version check and dispatches the
table commands afterwards.
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple

from django.utils import timezone

from core_backend.exceptions import InvalidStateError, ValidationFailedError
from orders.commands import ReleaseTable
from orders.models import Order, OrderItem

Status = Order.OrderStatus
ItemStatus = OrderItem.ItemStatus


@dataclass(frozen=True)
class TransitionPlan:
    changes: dict
    item_status: Optional[Tuple[str, str]] = None
    commands: Tuple = ()
    item_changes: dict = field(default_factory=dict)


class OrderStateMachine:
    # Forward steps are strictly adjacent; completion and cancellation are
    # reachable from every non-terminal state.
    VALID_STATUS_TRANSITIONS = {
        Status.PENDING: [Status.CONFIRMED, Status.COMPLETED, Status.CANCELLED],
        Status.CONFIRMED: [Status.PREPARING, Status.COMPLETED, Status.CANCELLED],
        Status.PREPARING: [Status.READY, Status.COMPLETED, Status.CANCELLED],
        Status.READY: [Status.SERVED, Status.COMPLETED, Status.CANCELLED],
        Status.SERVED: [Status.COMPLETED, Status.CANCELLED],
        Status.COMPLETED: [],
        Status.CANCELLED: [],
    }

    ITEM_FLOW = [ItemStatus.PENDING, ItemStatus.PREPARING, ItemStatus.READY, ItemStatus.SERVED]

    ITEM_TIMESTAMPS = {
        ItemStatus.PREPARING: "sent_to_kitchen_at",
        ItemStatus.READY: "prepared_at",
        ItemStatus.SERVED: "served_at",
    }

    @staticmethod
    def ensure_mutable(order, action="modify"):
        if order.is_terminal:
            raise InvalidStateError(
                f"Cannot {action} order {order.order_number}: it is {order.status}",
                order_id=order.pk,
                status=order.status,
            )

    @staticmethod
    def is_settled(order) -> bool:
        """Fully paid, or nothing to pay."""
        return order.payment_status == Order.PaymentStatus.PAID or order.total <= 0

    @staticmethod
    def plan(
        order,
        new_status: str,
        reason: Optional[str] = None,
        now=None,
        split_child_statuses: Optional[Iterable[str]] = None,
    ) -> TransitionPlan:
        """
        Validate ``order.status -> new_status`` and describe its effects.

        ``split_child_statuses`` must be provided for a split parent; the
        parent settles through its children and can only be closed once every
        child is closed.

        Raises:
            ValidationFailedError: unknown status value
            InvalidStateError: terminal order, illegal edge, or completion of
                an order that is not settled
        """
        if new_status not in Status.values:
            raise ValidationFailedError(
                f"'{new_status}' is not a valid order status.", field="status"
            )

        OrderStateMachine.ensure_mutable(order, action=f"move to {new_status}")

        if new_status not in OrderStateMachine.VALID_STATUS_TRANSITIONS.get(order.status, []):
            raise InvalidStateError(
                f"Cannot transition order from {order.status} to {new_status}.",
                order_id=order.pk,
            )

        now = now or timezone.now()
        changes = {"status": new_status, "updated_at": now}
        item_status = None
        item_changes = {}
        commands = ()

        if new_status == Status.CONFIRMED:
            changes["confirmed_at"] = now
            item_status = (ItemStatus.PENDING, ItemStatus.PREPARING)
            item_changes = {"sent_to_kitchen_at": now}

        elif new_status in (Status.COMPLETED, Status.CANCELLED):
            if order.is_split_parent:
                open_children = [
                    s for s in (split_child_statuses or []) if s not in Order.TERMINAL_STATUSES
                ]
                if open_children:
                    raise InvalidStateError(
                        f"Order {order.order_number} still has {len(open_children)} open split order(s)",
                        order_id=order.pk,
                    )
            elif new_status == Status.COMPLETED and not OrderStateMachine.is_settled(order):
                raise InvalidStateError(
                    f"Order {order.order_number} cannot be completed while payment is {order.payment_status}",
                    order_id=order.pk,
                    payment_status=order.payment_status,
                )

            if new_status == Status.COMPLETED:
                changes["completed_at"] = now
            else:
                changes["cancelled_at"] = now
                changes["cancellation_reason"] = (reason or "")[:255]

            if order.table_id:
                commands = (ReleaseTable(table_id=str(order.table_id), order_id=str(order.pk)),)

        return TransitionPlan(
            changes=changes,
            item_status=item_status,
            commands=commands,
            item_changes=item_changes,
        )

    @staticmethod
    def plan_item(order, item, new_status: str, now=None) -> dict:
        """
        Changes for moving one line forward through its preparation flow.

        Skipping steps is allowed; going back is not. Timestamps of the steps
        passed through are filled in when missing.
        """
        if new_status not in ItemStatus.values:
            raise ValidationFailedError(
                f"'{new_status}' is not a valid item status.", field="status"
            )
        OrderStateMachine.ensure_mutable(order, action="update items of")

        flow = OrderStateMachine.ITEM_FLOW
        if flow.index(new_status) <= flow.index(item.status):
            raise InvalidStateError(
                f"Item '{item.name}' cannot move from {item.status} to {new_status}",
                item_index=item.position,
            )

        now = now or timezone.now()
        changes = {"status": new_status}
        for step in flow[1:flow.index(new_status) + 1]:
            timestamp_field = OrderStateMachine.ITEM_TIMESTAMPS[step]
            if getattr(item, timestamp_field) is None:
                changes[timestamp_field] = now
        return changes
