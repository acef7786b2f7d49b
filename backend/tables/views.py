from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from .serializers import (
    ReconciledTableSerializer,
    ReserveTableSerializer,
    TableStatsSerializer,
    UpdateTableStatusSerializer,
)
from .services import TableService

logger = logging.getLogger(__name__)


class TableViewSet(viewsets.ViewSet):
    """
    Floor plan endpoints. Every response carries reconciled statuses; the
    stored status is never returned on its own.
    """

    def _actor(self, request):
        return str(request.user.pk) if request.user and request.user.is_authenticated else None

    def list(self, request: Request) -> Response:
        reconciled = TableService.list_tables(request.query_params.get("branch_id"))
        return Response(ReconciledTableSerializer(reconciled, many=True).data)

    def retrieve(self, request: Request, pk=None) -> Response:
        return Response(ReconciledTableSerializer(TableService.get_table(pk)).data)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        serializer = UpdateTableStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        reconciled = TableService.update_status(
            pk, serializer.validated_data["status"], actor=self._actor(request)
        )
        return Response(ReconciledTableSerializer(reconciled).data)

    @action(detail=True, methods=["post"])
    def reserve(self, request: Request, pk=None) -> Response:
        serializer = ReserveTableSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        reconciled = TableService.reserve_table(
            pk,
            name=data["name"],
            party_size=data["party_size"],
            reserved_for=data["reserved_for"],
            reserved_until=data["reserved_until"],
            phone=data.get("phone", ""),
            notes=data.get("notes", ""),
            actor=self._actor(request),
        )
        return Response(ReconciledTableSerializer(reconciled).data, status=status.HTTP_200_OK)

    @action(detail=True, methods=["post"], url_path="cancel-reservation")
    def cancel_reservation(self, request: Request, pk=None) -> Response:
        reconciled = TableService.cancel_reservation(pk, actor=self._actor(request))
        return Response(ReconciledTableSerializer(reconciled).data)

    @action(detail=False, methods=["get"])
    def stats(self, request: Request) -> Response:
        stats = TableService.table_stats(request.query_params.get("branch_id"))
        return Response(TableStatsSerializer(stats).data)
