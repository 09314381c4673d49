"""
Shared fixtures for the QuickGrab API tests.
"""

from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from marketplace.models import Item, Transaction

User = get_user_model()

PASSWORD = 'SecurePass123!'


@pytest.fixture(autouse=True)
def clear_cache(db):
    """Clear Django cache before each test to reset throttle limits."""
    from django.core.cache import cache
    cache.clear()


@pytest.fixture
def api_client():
    """Provide API client for testing."""
    return APIClient()


def make_user(email, **extra):
    extra.setdefault('name', email.split('@')[0].title())
    extra.setdefault('email_verified', True)
    user = User.objects.create_user(
        username=email,
        email=email,
        password=PASSWORD,
        **extra
    )
    user.refresh_trust()
    return user


def authenticate(client, user):
    """Attach a Bearer access token for user to client."""
    refresh = RefreshToken.for_user(user)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return client


def make_item(seller, name='Laptop Charger', price='30.00', **extra):
    extra.setdefault('category', 'electronics')
    extra.setdefault('condition', 'GOOD')
    return Item.objects.create(
        seller=seller,
        name=name,
        price=Decimal(price),
        **extra
    )


@pytest.fixture
def seller():
    return make_user('seller@stateu.edu', name='Sam Seller', college='State University')


@pytest.fixture
def buyer():
    return make_user('buyer@stateu.edu', name='Bea Buyer', college='State University')


@pytest.fixture
def outsider():
    return make_user('outsider@stateu.edu', name='Olly Outsider')


@pytest.fixture
def item(seller):
    return make_item(seller)


@pytest.fixture
def seller_client(seller):
    return authenticate(APIClient(), seller)


@pytest.fixture
def buyer_client(buyer):
    return authenticate(APIClient(), buyer)


@pytest.fixture
def outsider_client(outsider):
    return authenticate(APIClient(), outsider)


@pytest.fixture
def make_transaction(buyer, seller, item):
    """
    Factory creating a transaction directly in the given status.

    The item is reserved, or sold for a completed transaction.
    """
    def _make(status=Transaction.REQUESTED, **extra):
        tx = Transaction.objects.create(
            buyer=buyer,
            seller=seller,
            item=item,
            status=status,
            escrow_amount=item.price,
            **extra
        )
        item.availability_status = Item.SOLD if status == Transaction.COMPLETED else Item.RESERVED
        item.save(update_fields=['availability_status'])
        return tx
    return _make


@pytest.fixture
def create_user():
    return make_user


@pytest.fixture
def create_item():
    return make_item


@pytest.fixture
def client_for():
    """Factory returning an authenticated APIClient for a user."""
    def _client_for(user):
        return authenticate(APIClient(), user)
    return _client_for
