from django.contrib import admin
from .models import OrderPayment


@admin.register(OrderPayment)
class OrderPaymentAdmin(admin.ModelAdmin):
    list_display = ("order", "method", "amount", "processed_by", "paid_at")
    list_filter = ("method",)
    search_fields = ("order__order_number", "transaction_id")
    readonly_fields = ("order", "method", "amount", "transaction_id", "processed_by", "paid_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
