"""
Celery tasks for the floor plan.

Tasks:
- expire_table_reservations: frees tables whose reservation window has ended
"""
from celery import shared_task
import logging

logger = logging.getLogger(__name__)


@shared_task(name="tables.tasks.expire_table_reservations")
def expire_table_reservations():
    """Periodic sweep, scheduled by CELERY_BEAT_SCHEDULE."""
    from .services import TableService

    expired = TableService.expire_reservations()
    if expired:
        logger.info(f"Reservation sweep: {expired} table(s) returned to available")
    return expired
