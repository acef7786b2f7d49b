"""
Order Pricing Tests

Line and order totals are computed from catalog snapshots only; these tests
exercise the pure calculators without touching the database.
"""
import pytest
from decimal import Decimal

from core_backend.exceptions import ValidationFailedError
from orders.calculators import price_line, price_order
from products.services import AddonOption, MenuItemSnapshot, VariantOption


BURGER = MenuItemSnapshot(
    id="7d0c6c2e-3b55-4c5e-9d3f-0f6a3b1f2a10",
    name="Burger",
    price=Decimal("10.00"),
    variants=(
        VariantOption(name="Regular", price_modifier=Decimal("0.00")),
        VariantOption(name="Large", price_modifier=Decimal("2.00")),
        VariantOption(name="Kids", price_modifier=Decimal("-12.00")),
    ),
    addons=(
        AddonOption(name="Cheese", price=Decimal("1.50")),
        AddonOption(name="Bacon", price=Decimal("2.00")),
    ),
)


class TestPriceLine:
    """Unit price = base + variant modifier + add-ons."""

    def test_plain_line(self):
        line = price_line(BURGER, 3)
        assert line.unit_price == Decimal("10.00")
        assert line.total_price == Decimal("30.00")
        assert line.variant is None
        assert line.addons == ()

    def test_variant_and_addons(self):
        line = price_line(BURGER, 2, variant_name="Large", addon_names=["Cheese"])

        assert line.base_price == Decimal("10.00")
        assert line.unit_price == Decimal("13.50")
        assert line.total_price == Decimal("27.00")
        assert line.variant == {"name": "Large", "price_modifier": Decimal("2.00")}
        assert line.addons == ({"name": "Cheese", "price": Decimal("1.50")},)

    def test_multiple_addons(self):
        line = price_line(BURGER, 1, addon_names=["Cheese", "Bacon"])
        assert line.unit_price == Decimal("13.50")

    def test_unknown_variant_rejected(self):
        with pytest.raises(ValidationFailedError):
            price_line(BURGER, 1, variant_name="Gigantic")

    def test_unknown_addon_rejected(self):
        with pytest.raises(ValidationFailedError):
            price_line(BURGER, 1, addon_names=["Caviar"])

    @pytest.mark.parametrize("quantity", [0, -1, True, "2"])
    def test_bad_quantity_rejected(self, quantity):
        with pytest.raises(ValidationFailedError):
            price_line(BURGER, quantity)

    def test_negative_unit_price_rejected(self):
        with pytest.raises(ValidationFailedError):
            price_line(BURGER, 1, variant_name="Kids")


class TestPriceOrder:
    """Order totals from priced lines and rates."""

    def test_dine_in_scenario_total(self):
        """
        CRITICAL: 2 x Burger (Large + Cheese), tax 10%, service 5%, discount 3.00

        27.00 + 2.70 + 1.35 - 3.00 = 28.05
        """
        line = price_line(BURGER, 2, variant_name="Large", addon_names=["Cheese"])
        totals = price_order(
            [line],
            tax_rate=Decimal("10"),
            service_charge_rate=Decimal("5"),
            discount_amount=Decimal("3.00"),
        )

        assert totals.subtotal == Decimal("27.00")
        assert totals.tax_amount == Decimal("2.70")
        assert totals.service_charge_amount == Decimal("1.35")
        assert totals.discount_amount == Decimal("3.00")
        assert totals.total == Decimal("28.05")

    def test_delivery_fee_added(self):
        totals = price_order([price_line(BURGER, 1)], delivery_fee="4.99")
        assert totals.total == Decimal("14.99")

    def test_empty_order_is_zero(self):
        totals = price_order([])
        assert totals.subtotal == Decimal("0.00")
        assert totals.total == Decimal("0.00")

    def test_discount_equal_to_gross_allowed(self):
        totals = price_order([price_line(BURGER, 1)], discount_amount="10.00")
        assert totals.total == Decimal("0.00")

    def test_discount_larger_than_order_rejected(self):
        """The discount is never silently clamped."""
        with pytest.raises(ValidationFailedError) as exc_info:
            price_order([price_line(BURGER, 1)], discount_amount="10.01")
        assert exc_info.value.details["field"] == "discount_amount"

    @pytest.mark.parametrize(
        "field", ["tax_rate", "service_charge_rate", "discount_amount", "delivery_fee"]
    )
    def test_negative_inputs_rejected(self, field):
        with pytest.raises(ValidationFailedError):
            price_order([price_line(BURGER, 1)], **{field: Decimal("-1")})

    def test_rounding_is_half_even(self):
        # 10.50 subtotal at 2.5% tax = 0.2625 -> 0.26
        item = MenuItemSnapshot(id="x", name="Soup", price=Decimal("10.50"))
        totals = price_order([price_line(item, 1)], tax_rate=Decimal("2.5"))
        assert totals.tax_amount == Decimal("0.26")
        assert totals.total == Decimal("10.76")

    def test_zero_decimal_currency(self):
        item = MenuItemSnapshot(id="y", name="Ramen", price=Decimal("980"))
        totals = price_order([price_line(item, 2, currency="JPY")], tax_rate=Decimal("10"), currency="JPY")
        assert totals.subtotal == Decimal("1960")
        assert totals.tax_amount == Decimal("196")
        assert totals.total == Decimal("2156")
