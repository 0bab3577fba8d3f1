"""
Test configuration for the storefront settlement engine.
"""
import os
from decimal import Decimal

import pytest


def pytest_configure():
    """Configure Django settings for testing."""
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'storefront.test_settings')


@pytest.fixture
def provider(settings):
    """In-memory payment provider, also installed as the configured client"""
    from tests.fakes import FakeProviderClient

    FakeProviderClient.reset()
    settings.PAYMENT_PROVIDER_CLIENT = 'tests.fakes.FakeProviderClient'
    yield FakeProviderClient()
    FakeProviderClient.reset()


@pytest.fixture
def shipping_address():
    return {
        'full_name': 'Asha Verma',
        'street': '12 MG Road, Indiranagar',
        'city': 'Bengaluru',
        'state': 'Karnataka',
        'zip_code': '560038',
        'country': 'India',
        'phone': '9876543210',
    }


@pytest.fixture
def customer(db):
    from tests.factories import UserFactory
    return UserFactory()


@pytest.fixture
def customer_cart(customer):
    """Cart with one product at 1000.00: subtotal 1000, free shipping, tax 180"""
    from tests.factories import CartFactory, CartItemFactory, ProductFactory

    cart = CartFactory(user=customer)
    CartItemFactory(cart=cart, product=ProductFactory(price=Decimal('1000.00')), quantity=1)
    return cart
