"""
Order pricing.

Pure functions that turn catalog snapshots and rates into line and order
totals. Nothing here reads the database; callers look the menu items up
first (see products.services.CatalogService) and persist the results.

Formulas:
    unit_price      = base_price + variant.price_modifier + Σ addon.price
    total_price     = unit_price × quantity
    subtotal        = Σ total_price
    tax_amount      = subtotal × tax_rate / 100
    service_charge  = subtotal × service_charge_rate / 100
    total           = subtotal + tax + service_charge + delivery_fee − discount

Usage:
    from orders.calculators import price_line, price_order
    line = price_line(snapshot, 2, variant_name="Large", addon_names=["Cheese"])
    totals = price_order([line], tax_rate="10", service_charge_rate="5")
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Tuple

from core_backend.config import engine_settings
from core_backend.exceptions import ValidationFailedError
from payments.money import ZERO, quantize, percentage_of, to_decimal


@dataclass(frozen=True)
class PricedLine:
    menu_item_id: str
    name: str
    base_price: Decimal
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    variant: Optional[dict] = None
    addons: Tuple[dict, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax_amount: Decimal
    service_charge_amount: Decimal
    discount_amount: Decimal
    delivery_fee: Decimal
    total: Decimal


def _amount(name, value, currency) -> Decimal:
    """Parse a non-negative money or rate input."""
    if value is None:
        return quantize(currency, ZERO)
    try:
        amount = to_decimal(value)
    except (TypeError, ValueError) as e:
        raise ValidationFailedError(f"{name}: {e}", field=name) from None
    if not amount.is_finite():
        raise ValidationFailedError(f"{name} must be a finite number", field=name)
    if amount < 0:
        raise ValidationFailedError(f"{name} cannot be negative", field=name)
    return amount


def price_line(
    menu_item,
    quantity: int,
    variant_name: Optional[str] = None,
    addon_names: Iterable[str] = (),
    currency: Optional[str] = None,
) -> PricedLine:
    """
    Price one order line from a MenuItemSnapshot.

    Variant and add-on prices come from the snapshot, never from the client,
    so a line can only be priced with options the item actually offers.

    Raises:
        ValidationFailedError: on a non-positive quantity or an option the
            menu item does not offer
    """
    currency = currency or engine_settings.currency

    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise ValidationFailedError(
            f"Quantity for '{menu_item.name}' must be a whole number of at least 1",
            field="quantity",
        )

    base_price = quantize(currency, menu_item.price)
    unit_price = base_price

    variant = None
    if variant_name:
        option = menu_item.variant(variant_name)
        if option is None:
            raise ValidationFailedError(
                f"'{menu_item.name}' has no variant '{variant_name}'", field="variant"
            )
        modifier = quantize(currency, option.price_modifier)
        variant = {"name": option.name, "price_modifier": modifier}
        unit_price += modifier

    addons = []
    for addon_name in addon_names or ():
        option = menu_item.addon(addon_name)
        if option is None:
            raise ValidationFailedError(
                f"'{menu_item.name}' has no add-on '{addon_name}'", field="addons"
            )
        price = quantize(currency, option.price)
        addons.append({"name": option.name, "price": price})
        unit_price += price

    # A large negative variant modifier must not produce a negative line.
    if unit_price < 0:
        raise ValidationFailedError(
            f"Unit price for '{menu_item.name}' would be negative", field="variant"
        )

    unit_price = quantize(currency, unit_price)
    return PricedLine(
        menu_item_id=str(menu_item.id),
        name=menu_item.name,
        base_price=base_price,
        quantity=quantity,
        unit_price=unit_price,
        total_price=quantize(currency, unit_price * quantity),
        variant=variant,
        addons=tuple(addons),
    )


def price_order(
    lines: Sequence,
    tax_rate=ZERO,
    service_charge_rate=ZERO,
    discount_amount=ZERO,
    delivery_fee=ZERO,
    currency: Optional[str] = None,
) -> OrderTotals:
    """
    Aggregate priced lines into order totals.

    ``lines`` may be PricedLine instances or anything with a ``total_price``
    (persisted OrderItems when a split child is re-priced).

    Raises:
        ValidationFailedError: on negative inputs, or a discount larger than
            everything it could be taken off (it is never silently clamped)
    """
    currency = currency or engine_settings.currency

    tax_rate = _amount("tax_rate", tax_rate, currency)
    service_charge_rate = _amount("service_charge_rate", service_charge_rate, currency)
    discount_amount = quantize(currency, _amount("discount_amount", discount_amount, currency))
    delivery_fee = quantize(currency, _amount("delivery_fee", delivery_fee, currency))

    subtotal = quantize(
        currency, sum((to_decimal(line.total_price) for line in lines), ZERO)
    )
    tax_amount = percentage_of(currency, subtotal, tax_rate)
    service_charge_amount = percentage_of(currency, subtotal, service_charge_rate)

    gross = subtotal + tax_amount + service_charge_amount + delivery_fee
    if discount_amount > gross:
        raise ValidationFailedError(
            f"Discount {discount_amount} exceeds the order amount {gross}",
            field="discount_amount",
        )

    return OrderTotals(
        subtotal=subtotal,
        tax_amount=tax_amount,
        service_charge_amount=service_charge_amount,
        discount_amount=discount_amount,
        delivery_fee=delivery_fee,
        total=quantize(currency, gross - discount_amount),
    )
