import uuid
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """
    A menu item. Orders never reference live prices after creation: the
    pricing engine copies name and price into each order line.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    company_id = models.UUIDField(null=True, blank=True, db_index=True)
    name = models.CharField(max_length=200, help_text=_("Name shown on the menu."))
    description = models.TextField(blank=True)
    price = models.DecimalField(
        max_digits=10, decimal_places=2, help_text=_("Base price before variants and add-ons.")
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text=_("Inactive items cannot be ordered."),
    )
    created_at = models.DateTimeField(default=timezone.now, editable=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = _("Menu Item")
        verbose_name_plural = _("Menu Items")

    def __str__(self):
        return self.name


class ProductVariant(models.Model):
    """A size or style option. Its price modifier may be negative."""

    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="variants"
    )
    name = models.CharField(max_length=100)
    price_modifier = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "name"], name="unique_variant_name_per_product"
            ),
        ]

    def __str__(self):
        return f"{self.product.name} - {self.name}"


class ProductAddon(models.Model):
    product = models.ForeignKey(
        Product, on_delete=models.CASCADE, related_name="addons"
    )
    name = models.CharField(max_length=100)
    price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    is_available = models.BooleanField(default=True)
    display_order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ["display_order", "name"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "name"], name="unique_addon_name_per_product"
            ),
        ]

    def __str__(self):
        return f"{self.product.name} + {self.name}"
