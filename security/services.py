# apps/security/services.py
"""
Проверка PIN доступа.

WORKFLOW:
1. AuthRateThrottle на view учитывает попытку (профиль auth, ключ identity)
2. PIN неверный или identity неизвестен -> PinRejected
3. PIN верный -> счётчик identity сбрасывается
"""

import logging

from .exceptions import PinRejected
from .models import AccessPin
from .ratelimit import RateLimiter, RateLimitProfileName, get_rate_limiter

logger = logging.getLogger(__name__)


def normalize_identity(identity: str) -> str:
    return identity.strip().lower()


class PinVerificationService:
    """Сервис проверки PIN."""

    def __init__(self, limiter: RateLimiter = None) -> None:
        self.limiter = limiter if limiter is not None else get_rate_limiter()

    def verify(self, identity: str, pin: str) -> AccessPin:
        """
        Проверить PIN.

        Returns:
            AccessPin

        Raises:
            PinRejected: неверный PIN или identity не найден
        """
        key = normalize_identity(identity)

        access_pin = AccessPin.objects.filter(identity=key, is_active=True).first()
        if access_pin is None or not access_pin.check_pin(pin):
            logger.info(f"Неверный PIN для {key}")
            raise PinRejected(key)

        self.limiter.reset(key, RateLimitProfileName.AUTH.value)
        logger.info(f"PIN подтверждён для {key}")
        return access_pin
