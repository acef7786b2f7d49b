from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.db import transaction
import logging

logger = logging.getLogger(__name__)


def branch_group_name(branch_id) -> str:
    """Channel-layer group every floor-plan client of a branch joins."""
    return f"branch_{branch_id}_tables"


class TableNotificationService:
    """
    Broadcasts table status changes to the floor-plan subscribers of a branch.

    Publishing is fire-and-forget. A missing channel layer or a failed send
    is logged and never reaches the caller, whose state change is already
    committed.
    """

    @staticmethod
    def table_status_changed(branch_id, table_payload: dict):
        """Publish once the surrounding transaction commits (immediately if there is none)."""
        transaction.on_commit(
            lambda: TableNotificationService._publish(branch_id, table_payload)
        )

    @staticmethod
    def _publish(branch_id, table_payload: dict):
        try:
            channel_layer = get_channel_layer()
            if not channel_layer:
                logger.warning("Channel layer not available. Cannot send table status notification.")
                return

            group_name = branch_group_name(branch_id)
            payload = {
                "type": "table_status_changed",
                "branch_id": str(branch_id),
                "table": table_payload,
            }
            logger.debug(f"Broadcasting table {table_payload.get('table_number')} to group: {group_name}")
            async_to_sync(channel_layer.group_send)(group_name, payload)
        except Exception as e:
            logger.error(
                f"Failed to publish table status change for branch {branch_id}: {e}",
                exc_info=True,
            )
