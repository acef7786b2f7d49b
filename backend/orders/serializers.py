from rest_framework import serializers

from payments.models import OrderPayment
from .models import Order, OrderItem


# --- Output ---


class OrderItemSerializer(serializers.ModelSerializer):
    index = serializers.IntegerField(source="position", read_only=True)
    selected_variant = serializers.SerializerMethodField()
    selected_addons = serializers.SerializerMethodField()

    class Meta:
        model = OrderItem
        fields = [
            "index",
            "menu_item_id",
            "name",
            "base_price",
            "quantity",
            "selected_variant",
            "selected_addons",
            "unit_price",
            "total_price",
            "notes",
            "status",
            "sent_to_kitchen_at",
            "prepared_at",
            "served_at",
        ]
        read_only_fields = fields

    def get_selected_variant(self, obj):
        variant = obj.selected_variant
        if variant is None:
            return None
        return {"name": variant["name"], "price_modifier": str(variant["price_modifier"])}

    def get_selected_addons(self, obj):
        return [{"name": a["name"], "price": str(a["price"])} for a in obj.selected_addons]


class OrderPaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderPayment
        fields = ["id", "method", "amount", "transaction_id", "processed_by", "paid_at"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Full order with every derived field, returned by all order endpoints."""

    items = OrderItemSerializer(many=True, read_only=True)
    payments = OrderPaymentSerializer(many=True, read_only=True)
    change_due = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    parent_order_id = serializers.UUIDField(read_only=True, allow_null=True)
    split_order_ids = serializers.ListField(child=serializers.UUIDField(), read_only=True)
    table_id = serializers.UUIDField(read_only=True, allow_null=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "version",
            "order_number",
            "company_id",
            "branch_id",
            "business_date",
            "order_type",
            "table_id",
            "table_number",
            "waiter_id",
            "customer_id",
            "guest_name",
            "guest_phone",
            "guest_email",
            "notes",
            "status",
            "payment_status",
            "items",
            "subtotal",
            "tax_rate",
            "tax_amount",
            "service_charge_rate",
            "service_charge_amount",
            "discount_amount",
            "delivery_fee",
            "total",
            "paid_amount",
            "remaining_amount",
            "change_due",
            "payments",
            "is_split",
            "parent_order_id",
            "split_order_ids",
            "created_at",
            "updated_at",
            "confirmed_at",
            "completed_at",
            "cancelled_at",
            "cancellation_reason",
        ]
        read_only_fields = fields


# --- Input ---


class OrderItemInputSerializer(serializers.Serializer):
    menu_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1, default=1)
    variant = serializers.CharField(max_length=100, required=False, allow_null=True, allow_blank=True)
    addons = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False, default=list
    )
    notes = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class CreateOrderSerializer(serializers.Serializer):
    branch_id = serializers.UUIDField()
    company_id = serializers.UUIDField(required=False, allow_null=True)
    order_type = serializers.CharField(max_length=20, default=Order.OrderType.DINE_IN)
    table_id = serializers.UUIDField(required=False, allow_null=True)
    customer_id = serializers.UUIDField(required=False, allow_null=True)
    guest_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    guest_phone = serializers.CharField(max_length=20, required=False, allow_blank=True, default="")
    guest_email = serializers.EmailField(required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")
    items = OrderItemInputSerializer(many=True, allow_empty=False)
    tax_rate = serializers.DecimalField(max_digits=5, decimal_places=2, default=0)
    service_charge_rate = serializers.DecimalField(max_digits=5, decimal_places=2, default=0)
    discount_amount = serializers.DecimalField(max_digits=10, decimal_places=2, default=0)
    delivery_fee = serializers.DecimalField(max_digits=10, decimal_places=2, default=0)


class UpdateOrderStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)


class UpdateItemStatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class AddPaymentSerializer(serializers.Serializer):
    method = serializers.CharField(max_length=20)
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    transaction_id = serializers.CharField(max_length=255, required=False, allow_blank=True, allow_null=True)


class SplitGroupSerializer(serializers.Serializer):
    item_indices = serializers.ListField(child=serializers.IntegerField(min_value=0), allow_empty=False)
    quantities = serializers.DictField(child=serializers.IntegerField(min_value=1), required=False)


class SplitOrderSerializer(serializers.Serializer):
    splits = SplitGroupSerializer(many=True, allow_empty=False)
