"""Тесты проверки PIN с лимитом попыток."""

import pytest

from security.exceptions import PinRejected
from security.models import AccessPin
from security.ratelimit import RateLimiter
from security.services import PinVerificationService

pytestmark = pytest.mark.django_db


@pytest.fixture
def access_pin():
    access_pin = AccessPin(identity=' Courier@Example.com ')
    access_pin.set_pin('4821')
    access_pin.save()
    return access_pin


@pytest.fixture
def limiter(monotonic_clock):
    return RateLimiter(clock=monotonic_clock)


@pytest.fixture
def service(limiter):
    return PinVerificationService(limiter=limiter)


class TestPinVerificationService:

    def test_pin_is_hashed(self, access_pin):
        assert access_pin.identity == 'courier@example.com'
        assert access_pin.pin_hash != '4821'
        assert access_pin.check_pin('4821')

    def test_correct_pin(self, service, access_pin):
        assert service.verify('COURIER@example.com', '4821') == access_pin

    def test_wrong_pin(self, service, access_pin):
        with pytest.raises(PinRejected):
            service.verify('courier@example.com', '0000')

    def test_unknown_identity(self, service):
        with pytest.raises(PinRejected):
            service.verify('nobody@example.com', '4821')

    def test_inactive_pin(self, service, access_pin):
        access_pin.is_active = False
        access_pin.save()

        with pytest.raises(PinRejected):
            service.verify('courier@example.com', '4821')

    def test_success_resets_attempts(self, service, limiter, access_pin):
        for _ in range(4):
            limiter.check('courier@example.com', 'auth')

        service.verify(' Courier@Example.com', '4821')

        assert limiter.check('courier@example.com', 'auth').remaining == 4

    def test_failure_keeps_attempts(self, service, limiter, access_pin):
        for _ in range(4):
            limiter.check('courier@example.com', 'auth')

        with pytest.raises(PinRejected):
            service.verify('courier@example.com', '0000')

        assert limiter.check('courier@example.com', 'auth').remaining == 0


class TestPinVerifyApi:
    url = '/api/security/pin/verify/'

    def post(self, api_client, identity, pin):
        return api_client.post(self.url, {'identity': identity, 'pin': pin}, format='json')

    def test_verified(self, api_client, access_pin):
        response = self.post(api_client, 'courier@example.com', '4821')

        assert response.status_code == 200
        assert response.data == {'identity': 'courier@example.com', 'verified': True}

    def test_rejected(self, api_client, access_pin):
        response = self.post(api_client, 'courier@example.com', '0000')

        assert response.status_code == 401
        assert response.data == {'detail': 'Invalid identity or PIN'}

    def test_malformed_pin(self, api_client):
        response = self.post(api_client, 'courier@example.com', 'abcd')

        assert response.status_code == 400
        assert 'pin' in response.data

    def test_throttled(self, api_client, access_pin):
        for _ in range(5):
            assert self.post(api_client, 'courier@example.com', '0000').status_code == 401

        # Во время блокировки даже верный PIN не проверяется
        response = self.post(api_client, 'courier@example.com', '4821')

        assert response.status_code == 429
        assert int(response['Retry-After']) == 1800

    def test_throttle_is_per_identity(self, api_client, access_pin):
        other = AccessPin(identity='dispatch@example.com')
        other.set_pin('7777')
        other.save()
        for _ in range(6):
            self.post(api_client, 'courier@example.com', '0000')

        assert self.post(api_client, 'dispatch@example.com', '7777').status_code == 200

    def test_success_resets_attempts(self, api_client, access_pin):
        for _ in range(4):
            assert self.post(api_client, 'courier@example.com', '0000').status_code == 401

        assert self.post(api_client, 'courier@example.com', '4821').status_code == 200

        for _ in range(5):
            assert self.post(api_client, 'Courier@example.com', '0000').status_code == 401

    def test_numeric_identity_throttled_across_ips(self, api_client):
        access_pin = AccessPin(identity='15125550100')
        access_pin.set_pin('4821')
        access_pin.save()

        statuses = [
            api_client.post(
                self.url,
                {'identity': 15125550100, 'pin': '0000'},
                format='json',
                REMOTE_ADDR=f'198.51.100.{n}',
            ).status_code
            for n in range(7)
        ]

        assert statuses == [401] * 5 + [429, 429]
