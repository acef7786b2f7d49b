from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(
        r"ws/tables/(?P<branch_id>[0-9a-fA-F-]{36})/$",
        consumers.FloorPlanConsumer.as_asgi(),
    ),
]
