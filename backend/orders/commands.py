"""
Table side effects requested by the order lifecycle.

Order services never write table state themselves. They describe what should
happen to the table as a command and hand it to the table service, which is
the only writer of Table rows.
"""
from dataclasses import dataclass
from typing import Iterable, Optional
import logging

from core_backend.exceptions import EngineError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OccupyTable:
    table_id: str
    order_id: str
    waiter_id: Optional[str] = None


@dataclass(frozen=True)
class ReleaseTable:
    """
    Free a table.

    With ``order_id`` the release is order-triggered (that order finished or
    was removed) and other open orders on the table keep it occupied. Without
    it the release is explicit and closes out everything on the table.
    """

    table_id: str
    order_id: Optional[str] = None


def dispatch(commands: Iterable):
    """
    Execute table commands once the order write that produced them is done.

    The order change is already committed when this runs, so a failed table
    command is logged, not raised. Table reads recompute occupancy from
    orders and correct whatever stored status it left behind.
    """
    from tables.services import TableService

    for command in commands:
        try:
            TableService.execute(command)
        except EngineError as e:
            logger.error(f"Table command {command} failed after order commit: {e}")
