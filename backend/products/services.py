"""
Read-only catalog lookup used when pricing new orders.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple
import logging

from django.core.exceptions import ValidationError as DjangoValidationError

from core_backend.exceptions import NotFoundError
from .models import Product

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VariantOption:
    name: str
    price_modifier: Decimal


@dataclass(frozen=True)
class AddonOption:
    name: str
    price: Decimal


@dataclass(frozen=True)
class MenuItemSnapshot:
    """Immutable copy of a menu item as it was at lookup time."""

    id: str
    name: str
    price: Decimal
    variants: Tuple[VariantOption, ...] = ()
    addons: Tuple[AddonOption, ...] = ()

    def variant(self, name: str) -> Optional[VariantOption]:
        for option in self.variants:
            if option.name == name:
                return option
        return None

    def addon(self, name: str) -> Optional[AddonOption]:
        for option in self.addons:
            if option.name == name:
                return option
        return None


class CatalogService:
    @staticmethod
    def get_menu_item(menu_item_id) -> MenuItemSnapshot:
        """
        Returns a snapshot of an active menu item with its variants and
        available add-ons.

        Raises:
            NotFoundError: if the id does not resolve to an active item
        """
        try:
            product = Product.objects.prefetch_related("variants", "addons").get(
                pk=menu_item_id, is_active=True
            )
        except (Product.DoesNotExist, DjangoValidationError, ValueError):
            raise NotFoundError("MenuItem", menu_item_id) from None

        return MenuItemSnapshot(
            id=str(product.pk),
            name=product.name,
            price=product.price,
            variants=tuple(
                VariantOption(name=v.name, price_modifier=v.price_modifier)
                for v in product.variants.all()
            ),
            addons=tuple(
                AddonOption(name=a.name, price=a.price)
                for a in product.addons.all()
                if a.is_available
            ),
        )
