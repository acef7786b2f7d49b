"""
Tables services package.

- TableService: single writer of table state (occupy, release, reserve, ...)
- TableOccupancyReconciler: effective occupancy recomputed from orders
"""

from .occupancy_service import ReconciledTable, TableOccupancyReconciler, effective_status
from .table_service import TableService

__all__ = [
    "ReconciledTable",
    "TableOccupancyReconciler",
    "TableService",
    "effective_status",
]
