"""
Catalog Lookup Tests

Orders are priced from immutable snapshots of active menu items.
"""
import uuid
import pytest
from decimal import Decimal

from core_backend.exceptions import NotFoundError
from products.services import CatalogService


@pytest.mark.django_db
class TestCatalogService:
    def test_snapshot_of_menu_item(self, burger):
        snapshot = CatalogService.get_menu_item(burger.pk)

        assert snapshot.id == str(burger.pk)
        assert snapshot.name == "Burger"
        assert snapshot.price == Decimal("10.00")
        assert [v.name for v in snapshot.variants] == ["Regular", "Large"]
        assert snapshot.variant("Large").price_modifier == Decimal("2.00")

    def test_unavailable_addons_are_left_out(self, burger):
        snapshot = CatalogService.get_menu_item(burger.pk)

        assert [a.name for a in snapshot.addons] == ["Cheese", "Bacon"]
        assert snapshot.addon("Truffle") is None

    def test_unknown_option_lookup(self, burger):
        snapshot = CatalogService.get_menu_item(burger.pk)
        assert snapshot.variant("Huge") is None

    def test_inactive_item_not_found(self, inactive_product):
        with pytest.raises(NotFoundError):
            CatalogService.get_menu_item(inactive_product.pk)

    @pytest.mark.parametrize("menu_item_id", [uuid.uuid4(), "not-a-uuid", None])
    def test_unknown_item_not_found(self, db, menu_item_id):
        with pytest.raises(NotFoundError):
            CatalogService.get_menu_item(menu_item_id)

    def test_snapshot_is_immutable(self, burger):
        snapshot = CatalogService.get_menu_item(burger.pk)
        with pytest.raises(AttributeError):
            snapshot.price = Decimal("1.00")
