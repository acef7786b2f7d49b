"""
Orders services package.

- OrderService: order lifecycle (create, status transitions, item status, delete)
- OrderSplitService: split billing
"""

from .order_service import OrderService, OrderItemFactory
from .split_service import OrderSplitService

__all__ = [
    "OrderService",
    "OrderItemFactory",
    "OrderSplitService",
]
