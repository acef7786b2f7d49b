from channels.generic.websocket import AsyncWebsocketConsumer
from channels.db import database_sync_to_async
import json
import logging

from .notification_service import branch_group_name
from .serializers import table_payload
from .services import TableService

logger = logging.getLogger(__name__)


class FloorPlanConsumer(AsyncWebsocketConsumer):
    """Live floor plan of one branch for waiter tablets and host displays."""

    async def connect(self):
        self.branch_id = self.scope["url_route"]["kwargs"]["branch_id"]
        self.group_name = branch_group_name(self.branch_id)

        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_floor_plan()

        logger.info(f"Floor plan WebSocket connected: branch={self.branch_id}")

    async def disconnect(self, close_code):
        await self.channel_layer.group_discard(self.group_name, self.channel_name)
        logger.info(f"Floor plan WebSocket disconnected: branch={self.branch_id}, code={close_code}")

    async def receive(self, text_data=None, bytes_data=None):
        """Clients may ask for a fresh snapshot or ping the connection."""
        try:
            data = json.loads(text_data or "{}")
        except json.JSONDecodeError:
            await self.send_error("Invalid JSON")
            return

        action = data.get("action")
        if action == "refresh":
            await self.send_floor_plan()
        elif action == "ping":
            await self.send(text_data=json.dumps({"type": "pong"}))
        else:
            await self.send_error(f"Unknown action: {action}")

    async def send_floor_plan(self):
        tables = await self.get_floor_plan()
        await self.send(
            text_data=json.dumps(
                {"type": "floor_plan", "branch_id": self.branch_id, "tables": tables}
            )
        )

    async def send_error(self, message):
        await self.send(text_data=json.dumps({"type": "error", "message": message}))

    @database_sync_to_async
    def get_floor_plan(self):
        return [table_payload(entry) for entry in TableService.list_tables(self.branch_id)]

    # --- channel layer events ---

    async def table_status_changed(self, event):
        await self.send(
            text_data=json.dumps(
                {
                    "type": "table_status_changed",
                    "branch_id": event["branch_id"],
                    "table": event["table"],
                }
            )
        )
