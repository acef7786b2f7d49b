from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
import logging

from core_backend.exceptions import ValidationFailedError
from payments.services import PaymentLedgerService
from .filters import OrderFilter
from .models import Order
from .serializers import (
    AddPaymentSerializer,
    CreateOrderSerializer,
    OrderSerializer,
    SplitOrderSerializer,
    UpdateItemStatusSerializer,
    UpdateOrderStatusSerializer,
)
from .services import OrderService, OrderSplitService

logger = logging.getLogger(__name__)


class OrderViewSet(
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    """
    Order endpoints. Reads go through the ORM; every write goes through the
    order services and answers with the full, re-read order.
    """

    queryset = Order.objects.select_related("table").prefetch_related(
        "items", "payments", "split_orders"
    )
    serializer_class = OrderSerializer
    filterset_class = OrderFilter

    def _actor(self, request):
        return str(request.user.pk) if request.user and request.user.is_authenticated else None

    def retrieve(self, request: Request, pk=None) -> Response:
        return Response(OrderSerializer(OrderService.get_order(pk)).data)

    def create(self, request: Request) -> Response:
        serializer = CreateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        order = OrderService.create_order(
            branch_id=data["branch_id"],
            company_id=data.get("company_id"),
            order_type=data["order_type"],
            table_id=data.get("table_id"),
            customer_id=data.get("customer_id"),
            guest_name=data.get("guest_name", ""),
            guest_phone=data.get("guest_phone", ""),
            guest_email=data.get("guest_email", ""),
            notes=data.get("notes", ""),
            items=[dict(item) for item in data["items"]],
            tax_rate=data["tax_rate"],
            service_charge_rate=data["service_charge_rate"],
            discount_amount=data["discount_amount"],
            delivery_fee=data["delivery_fee"],
            waiter_id=self._actor(request),
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def destroy(self, request: Request, pk=None) -> Response:
        OrderService.delete_order(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request: Request, pk=None) -> Response:
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.update_status(
            pk,
            serializer.validated_data["status"],
            actor=self._actor(request),
            reason=serializer.validated_data.get("reason"),
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def payments(self, request: Request, pk=None) -> Response:
        serializer = AddPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = PaymentLedgerService.add_payment(
            pk,
            method=serializer.validated_data["method"],
            amount=serializer.validated_data["amount"],
            processed_by=self._actor(request),
            transaction_id=serializer.validated_data.get("transaction_id"),
        )
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def split(self, request: Request, pk=None) -> Response:
        serializer = SplitOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        splits = [
            {
                "item_indices": group["item_indices"],
                "quantities": group.get("quantities") or {},
            }
            for group in serializer.validated_data["splits"]
        ]
        parent, children = OrderSplitService.split_order(pk, splits, actor=self._actor(request))
        return Response(
            {
                "parent": OrderSerializer(parent).data,
                "split_orders": OrderSerializer(children, many=True).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"], url_path=r"items/(?P<item_index>\d+)/status")
    def item_status(self, request: Request, pk=None, item_index=None) -> Response:
        serializer = UpdateItemStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = OrderService.update_item_status(
            pk, int(item_index), serializer.validated_data["status"]
        )
        return Response(OrderSerializer(order).data)

    @action(detail=False, methods=["get"])
    def active(self, request: Request) -> Response:
        branch_id = request.query_params.get("branch_id")
        if not branch_id:
            raise ValidationFailedError("branch_id is required", field="branch_id")
        try:
            orders = list(OrderService.active_orders_for_branch(branch_id))
        except (DjangoValidationError, ValueError):
            raise ValidationFailedError(f"'{branch_id}' is not a valid branch id", field="branch_id") from None
        return Response(OrderSerializer(orders, many=True).data)
