from django.contrib import admin
from .models import Table


@admin.register(Table)
class TableAdmin(admin.ModelAdmin):
    list_display = ("table_number", "branch_id", "capacity", "status", "is_active")
    list_filter = ("status", "is_active")
    search_fields = ("table_number",)
    readonly_fields = ("version", "current_order_id", "occupied_by", "occupied_at")
