"""
Shared test fixtures for all backend tests.

This module provides reusable pytest fixtures for common test objects
like branches, staff users, menu items, tables and orders.
"""
import uuid
import pytest
from decimal import Decimal
from django.contrib.auth import get_user_model

from products.models import Product, ProductVariant, ProductAddon
from tables.models import Table
from orders.models import Order
from orders.services import OrderService
from payments.services import PaymentLedgerService

User = get_user_model()


# ============================================================================
# SCOPE FIXTURES
# ============================================================================

@pytest.fixture
def branch_id():
    """Branch all default fixtures live in"""
    return uuid.uuid4()


@pytest.fixture
def other_branch_id():
    """A second branch, for isolation tests"""
    return uuid.uuid4()


@pytest.fixture
def company_id():
    return uuid.uuid4()


# ============================================================================
# USER FIXTURES
# ============================================================================

@pytest.fixture
def waiter(db):
    """Floor staff member placing orders"""
    return User.objects.create_user(
        username="waiter",
        email="waiter@restaurant.test",
        password="password123",
    )


@pytest.fixture
def second_waiter(db):
    return User.objects.create_user(
        username="waiter2",
        email="waiter2@restaurant.test",
        password="password123",
    )


# ============================================================================
# API CLIENT FIXTURES
# ============================================================================

@pytest.fixture
def api_client():
    """
    Provide DRF API client for API tests.

    Usage:
        def test_my_api(api_client):
            response = api_client.get('/api/tables/')
            assert response.status_code == 403
    """
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, waiter):
    """
    Provide an API client logged in as the waiter.

    Usage:
        def test_protected_endpoint(authenticated_client):
            response = authenticated_client.get('/api/orders/')
            assert response.status_code == 200
    """
    api_client.force_authenticate(user=waiter)
    return api_client


# ============================================================================
# CATALOG FIXTURES
# ============================================================================

@pytest.fixture
def burger(db):
    """
    Burger at 10.00 with a Large (+2.00) variant and Cheese (+1.50) add-on.

    The pricing scenario order uses: 2 x Large + Cheese = 27.00.
    """
    product = Product.objects.create(name="Burger", price=Decimal("10.00"))
    ProductVariant.objects.create(product=product, name="Regular", price_modifier=Decimal("0.00"))
    ProductVariant.objects.create(
        product=product, name="Large", price_modifier=Decimal("2.00"), display_order=1
    )
    ProductAddon.objects.create(product=product, name="Cheese", price=Decimal("1.50"))
    ProductAddon.objects.create(product=product, name="Bacon", price=Decimal("2.00"), display_order=1)
    ProductAddon.objects.create(
        product=product, name="Truffle", price=Decimal("5.00"), is_available=False
    )
    return product


@pytest.fixture
def soda(db):
    return Product.objects.create(name="Soda", price=Decimal("2.50"))


@pytest.fixture
def inactive_product(db):
    return Product.objects.create(name="Seasonal Pie", price=Decimal("6.00"), is_active=False)


# ============================================================================
# TABLE FIXTURES
# ============================================================================

@pytest.fixture
def table_factory(db, branch_id):
    """
    Create tables in the default branch.

    Usage:
        def test_x(table_factory):
            patio = table_factory("P1", capacity=2)
    """
    def make(table_number="T1", capacity=4, branch=None, **kwargs):
        return Table.objects.create(
            branch_id=branch or branch_id,
            table_number=table_number,
            capacity=capacity,
            **kwargs,
        )
    return make


@pytest.fixture
def table(table_factory):
    return table_factory("T1", capacity=4)


@pytest.fixture
def second_table(table_factory):
    return table_factory("T2", capacity=2)


# ============================================================================
# ORDER FIXTURES
# ============================================================================

@pytest.fixture
def order_factory(branch_id, company_id, waiter, burger):
    """
    Create orders through OrderService so numbering, pricing and table
    commands all run.

    Without a table the order is a takeaway order.
    """
    def make(table=None, items=None, order_type=None, **kwargs):
        kwargs.setdefault("branch_id", branch_id)
        kwargs.setdefault("company_id", company_id)
        kwargs.setdefault("waiter_id", waiter.pk)
        if order_type is None:
            order_type = Order.OrderType.DINE_IN if table is not None else Order.OrderType.TAKEAWAY
        return OrderService.create_order(
            order_type=order_type,
            table_id=table.pk if table is not None else None,
            items=items or [{"menu_item_id": burger.pk, "quantity": 1}],
            **kwargs,
        )
    return make


@pytest.fixture
def scenario_order(order_factory, table, burger):
    """
    Dine-in order: 2 x Burger (Large, Cheese), tax 10%, service 5%,
    discount 3.00. Total 28.05.
    """
    return order_factory(
        table=table,
        items=[
            {
                "menu_item_id": burger.pk,
                "quantity": 2,
                "variant": "Large",
                "addons": ["Cheese"],
            }
        ],
        tax_rate=Decimal("10"),
        service_charge_rate=Decimal("5"),
        discount_amount=Decimal("3.00"),
    )


@pytest.fixture
def split_ready_order(order_factory, table, burger, soda):
    """Dine-in order with two lines: 2 x Burger (20.00) and 3 x Soda (7.50), tax 10%."""
    return order_factory(
        table=table,
        items=[
            {"menu_item_id": burger.pk, "quantity": 2},
            {"menu_item_id": soda.pk, "quantity": 3},
        ],
        tax_rate=Decimal("10"),
    )


@pytest.fixture
def pay_in_full(waiter):
    """Settle an order's remaining amount in cash."""
    def pay(order):
        return PaymentLedgerService.add_payment(
            order.pk, "cash", order.remaining_amount, processed_by=waiter.pk
        )
    return pay
