from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("position", "name", "quantity", "unit_price", "total_price", "status")
    fields = readonly_fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Read-mostly admin for orders. Totals and settlement fields are derived and
    must only change through the order services.
    """

    list_display = (
        "order_number",
        "branch_id",
        "order_type",
        "table_number",
        "status",
        "payment_status",
        "total",
        "created_at",
    )
    list_filter = ("status", "payment_status", "order_type", "is_split")
    search_fields = ("order_number", "table_number", "guest_name")
    readonly_fields = (
        "version",
        "subtotal",
        "tax_amount",
        "service_charge_amount",
        "total",
        "paid_amount",
        "remaining_amount",
        "parent_order",
    )
    inlines = [OrderItemInline]
