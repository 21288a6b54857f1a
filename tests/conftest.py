"""Общие фикстуры тестов."""

from datetime import datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.apps import apps
from django.conf import settings as django_settings
from rest_framework.test import APIClient

from catalog.models import MenuItem, Vendor
from orders.checkout import CheckoutIssuer, InMemoryCredentialStore
from orders.pricing import OrderItemRequest, PricingEngine
from security.ratelimit import RateLimiter, load_profiles


class FakeClock:
    """Часы, которые двигает тест."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta):
        self.now = self.now + delta


@pytest.fixture
def monotonic_clock():
    return FakeClock(1000.0)


@pytest.fixture
def wall_clock():
    return FakeClock(datetime(2024, 5, 1, 12, 0, tzinfo=dt_timezone.utc))


@pytest.fixture(autouse=True)
def fresh_rate_limiter():
    """Каждый тест начинает с пустой таблицей лимитов."""
    config = apps.get_app_config('security')
    original = config.rate_limiter
    config.rate_limiter = RateLimiter(load_profiles(django_settings.RATE_LIMIT_PROFILES))
    yield config.rate_limiter
    config.rate_limiter = original


# =============================================================================
# КАТАЛОГ
# =============================================================================

@pytest.fixture
def vendor(db):
    return Vendor.objects.create(name='Taqueria Ana', minimum_order=Decimal('20.00'))


@pytest.fixture
def menu(vendor):
    return {
        'taco': MenuItem.objects.create(vendor=vendor, name='Taco', category='Mains', price=Decimal('8.00')),
        'burrito': MenuItem.objects.create(vendor=vendor, name='Burrito', category='Mains', price=Decimal('25.00')),
        'horchata': MenuItem.objects.create(
            vendor=vendor, name='Horchata', category='Drinks', price=Decimal('4.50'), is_available=False
        ),
    }


@pytest.fixture
def make_item():
    """OrderItemRequest для позиции меню."""

    def _make(menu_item, quantity, **kwargs):
        return OrderItemRequest(
            name=menu_item.name,
            quantity=quantity,
            menu_item_id=str(menu_item.id),
            **kwargs
        )

    return _make


@pytest.fixture
def engine():
    return PricingEngine()


@pytest.fixture
def issuer(engine, wall_clock):
    return CheckoutIssuer(engine, store=InMemoryCredentialStore(), clock=wall_clock)


# =============================================================================
# HTTP
# =============================================================================

@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user(django_user_model):
    return django_user_model.objects.create_user(username='customer', password='s3cret-pass')


@pytest.fixture
def staff_user(django_user_model):
    return django_user_model.objects.create_user(username='payments', password='s3cret-pass', is_staff=True)


@pytest.fixture
def customer_client(api_client, user):
    api_client.force_authenticate(user=user)
    return api_client


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client
