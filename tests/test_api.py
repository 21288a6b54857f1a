"""Тесты HTTP API orders."""

import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from django.db import DatabaseError

from orders.checkout import get_checkout_issuer
from orders.models import OrderStatus, ScheduledOrder

pytestmark = pytest.mark.django_db


@pytest.fixture
def cart(vendor, menu):
    return {
        'vendor_id': str(vendor.id),
        'items': [
            {'menu_item_id': str(menu['taco'].id), 'name': 'Taco', 'quantity': 3},
            {'name': 'Catering tray', 'quantity': 1, 'price': '12.50', 'notes': 'for the office'},
        ],
        'gratuity_percent': '10',
        'delivery_distance_miles': '4',
    }


@pytest.fixture
def issued_token(customer_client, cart):
    response = customer_client.post('/api/orders/checkout/', cart, format='json')
    assert response.status_code == 201
    return response.data['token']


# =============================================================================
# QUOTE
# =============================================================================

class TestQuote:
    url = '/api/orders/quote/'

    def test_quote(self, api_client, cart):
        response = api_client.post(self.url, cart, format='json')

        assert response.status_code == 200
        assert response.data['is_valid'] is True
        assert response.data['subtotal'] == '36.50'
        assert response.data['gratuity'] == '3.65'
        assert response.data['delivery_fee'] == '11.99'
        assert response.data['items'][1]['price'] == '12.50'
        assert response['X-RateLimit-Remaining'] == '99'

    def test_quote_reports_pricing_errors(self, api_client, vendor, menu):
        body = {
            'vendor_id': str(vendor.id),
            'items': [{'menu_item_id': str(menu['taco'].id), 'name': 'Taco', 'quantity': 2}],
        }

        response = api_client.post(self.url, body, format='json')

        assert response.status_code == 200
        assert response.data['is_valid'] is False
        assert response.data['errors'] == ["minimum order of $20.00 not met (current: $16.00)"]

    @pytest.mark.parametrize('item', [
        {'name': 'Taco', 'quantity': 0},
        {'name': 'Taco', 'quantity': 'many'},
        {'quantity': 1, 'price': '3.00'},
    ])
    def test_malformed_item(self, api_client, vendor, item):
        response = api_client.post(
            self.url, {'vendor_id': str(vendor.id), 'items': [item]}, format='json'
        )

        assert response.status_code == 400
        assert 'items' in response.data


# =============================================================================
# CHECKOUT
# =============================================================================

class TestCheckout:
    url = '/api/orders/checkout/'

    def test_requires_authentication(self, api_client, cart):
        response = api_client.post(self.url, cart, format='json')

        assert response.status_code == 401

    def test_issues_credential(self, customer_client, cart):
        response = customer_client.post(self.url, cart, format='json')

        assert response.status_code == 201
        assert len(response.data['token']) == 64
        assert response.data['total'] == response.data['pricing']['total']

    def test_validation_failure(self, customer_client, vendor, menu):
        body = {
            'vendor_id': str(vendor.id),
            'items': [{'menu_item_id': str(menu['taco'].id), 'name': 'Taco', 'quantity': 2}],
        }

        response = customer_client.post(self.url, body, format='json')

        assert response.status_code == 422
        assert response.data == {
            'detail': 'Order validation failed',
            'errors': ["minimum order of $20.00 not met (current: $16.00)"],
        }

    def test_unknown_vendor(self, customer_client):
        vendor_id = str(uuid.uuid4())

        response = customer_client.post(self.url, {'vendor_id': vendor_id, 'items': []}, format='json')

        assert response.status_code == 422
        assert response.data['errors'] == [f"vendor not found: {vendor_id}"]


class TestCapture:
    url = '/api/orders/checkout/capture/'

    def test_capture_persists_order(self, staff_client, staff_user, issued_token, vendor):
        response = staff_client.post(self.url, {'token': issued_token}, format='json')

        assert response.status_code == 201
        order = ScheduledOrder.objects.get(pk=response.data['id'])
        assert order.vendor == vendor
        assert order.total == Decimal(response.data['total'])
        assert order.gratuity_percent == Decimal('10')
        assert order.created_by == staff_user
        assert order.status == OrderStatus.SCHEDULED

    def test_capture_only_once(self, staff_client, issued_token):
        staff_client.post(self.url, {'token': issued_token}, format='json')

        response = staff_client.post(self.url, {'token': issued_token}, format='json')

        assert response.status_code == 404
        assert ScheduledOrder.objects.count() == 1

    def test_capture_expired(self, staff_client, issued_token, monkeypatch):
        issuer = get_checkout_issuer()
        later = issuer.clock() + timedelta(minutes=31)
        monkeypatch.setattr(issuer, 'clock', lambda: later)

        response = staff_client.post(self.url, {'token': issued_token}, format='json')

        assert response.status_code == 410
        assert not ScheduledOrder.objects.exists()

    def test_failed_placement_keeps_token(self, staff_client, issued_token, monkeypatch):
        def failing_create(**kwargs):
            raise DatabaseError('disk full')

        monkeypatch.setattr(ScheduledOrder.objects, 'create', failing_create)
        with pytest.raises(DatabaseError):
            staff_client.post(self.url, {'token': issued_token}, format='json')
        monkeypatch.undo()

        response = staff_client.post(self.url, {'token': issued_token}, format='json')

        assert response.status_code == 201
        assert ScheduledOrder.objects.count() == 1

    def test_capture_requires_staff(self, customer_client, issued_token):
        response = customer_client.post(self.url, {'token': issued_token}, format='json')

        assert response.status_code == 403

    def test_invalidate(self, staff_client, issued_token):
        response = staff_client.post('/api/orders/checkout/invalidate/', {'token': issued_token}, format='json')

        assert response.data == {'invalidated': True}
        response = staff_client.post(self.url, {'token': issued_token}, format='json')
        assert response.status_code == 404


# =============================================================================
# СОХРАНЁННЫЕ ЗАКАЗЫ
# =============================================================================

class TestScheduledOrders:
    url = '/api/orders/scheduled/'

    @pytest.fixture
    def order(self, staff_client, issued_token):
        response = staff_client.post('/api/orders/checkout/capture/', {'token': issued_token}, format='json')
        return ScheduledOrder.objects.get(pk=response.data['id'])

    def test_list_and_filter(self, staff_client, order, vendor):
        response = staff_client.get(self.url, {'vendor': str(vendor.id), 'status': 'scheduled'})

        assert response.status_code == 200
        assert response.data['count'] == 1
        assert response.data['results'][0]['id'] == str(order.id)

        response = staff_client.get(self.url, {'status': 'delivered'})
        assert response.data['count'] == 0

    def test_date_range_filter(self, staff_client, order):
        after = (order.created_at + timedelta(minutes=1)).isoformat()

        response = staff_client.get(self.url, {'created_from': after})

        assert response.data['count'] == 0

    def test_list_requires_staff(self, customer_client, order):
        assert customer_client.get(self.url).status_code == 403

    def test_reconcile(self, staff_client, order):
        response = staff_client.get(f'{self.url}{order.id}/reconcile/')

        assert response.status_code == 200
        assert response.data['valid'] is True
        assert response.data['difference'] == '0.00'

    def test_reconcile_unknown(self, staff_client):
        response = staff_client.get(f'{self.url}{uuid.uuid4()}/reconcile/')

        assert response.status_code == 404

    def test_order_gratuity_split(self, staff_client, order):
        response = staff_client.get(f'{self.url}{order.id}/gratuity-split/')

        # 10% от 36.50 = 3.65 -> меньше $5, курьеру 0
        assert response.data == {'driver_tip': 0, 'internal_tip': 365}


class TestGratuitySplit:
    url = '/api/orders/gratuity-split/'

    def test_split(self, staff_client):
        response = staff_client.post(self.url, {'amount_cents': 1200}, format='json')

        assert response.status_code == 200
        assert response.data == {'driver_tip': 500, 'internal_tip': 700}

    def test_negative_amount(self, staff_client):
        response = staff_client.post(self.url, {'amount_cents': -5}, format='json')

        assert response.status_code == 400


# =============================================================================
# СЛУЖЕБНОЕ
# =============================================================================

def test_health_check(client):
    response = client.get('/health/')

    assert response.status_code == 200
    assert response.json()['checks'] == {'database': 'ok', 'cache': 'ok'}
    assert not response.has_header('X-RateLimit-Remaining')


def test_api_rate_limit(api_client, fresh_rate_limiter, cart):
    from security.ratelimit import RateLimitProfile

    fresh_rate_limiter.profiles['api'] = RateLimitProfile('api', 60, 2, 60)
    for _ in range(2):
        assert api_client.post('/api/orders/quote/', cart, format='json').status_code == 200

    response = api_client.post('/api/orders/quote/', cart, format='json')

    assert response.status_code == 429
    assert response['Retry-After'] == '60'
    assert response.json() == {'error': 'Too many requests', 'retry_after': 60}
