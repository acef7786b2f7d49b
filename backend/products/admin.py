from django.contrib import admin
from .models import Product, ProductVariant, ProductAddon


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0


class ProductAddonInline(admin.TabularInline):
    model = ProductAddon
    extra = 0


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "price", "is_active")
    list_filter = ("is_active",)
    search_fields = ("name",)
    inlines = [ProductVariantInline, ProductAddonInline]
