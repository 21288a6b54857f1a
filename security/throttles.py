# apps/security/throttles.py
"""
DRF throttle-классы поверх security.ratelimit.

ИСПОЛЬЗОВАНИЕ:
- SlidingWindowThrottle: базовый класс, профиль api, ключ - IP клиента
- AuthRateThrottle: профиль auth, ключ - identity из тела запроса
  (identity / phone / email), без него - IP

В отличие от встроенных throttle DRF, счётчики не в кэше, а в
RateLimiter процесса, и после превышения лимита ключ блокируется
на block_seconds профиля.
"""

from rest_framework.throttling import BaseThrottle

from .ratelimit import RateLimitProfileName, get_rate_limiter
from .services import normalize_identity

IDENTITY_FIELDS = ('identity', 'phone', 'email')


def get_client_ip(request) -> str:
    """IP клиента с учётом REST_FRAMEWORK['NUM_PROXIES']."""
    return BaseThrottle().get_ident(request)


class SlidingWindowThrottle(BaseThrottle):
    """Базовый throttle: один профиль, ключ по IP."""

    profile = RateLimitProfileName.API.value
    limiter = None

    def __init__(self):
        self.decision = None

    def get_limiter(self):
        if self.limiter is not None:
            return self.limiter
        return get_rate_limiter()

    def get_cache_key(self, request, view):
        return self.get_ident(request)

    def allow_request(self, request, view):
        key = self.get_cache_key(request, view)
        if not key:
            return True
        self.decision = self.get_limiter().check(key, self.profile)
        return self.decision.allowed

    def wait(self):
        if self.decision is None:
            return None
        return self.decision.retry_after


class AuthRateThrottle(SlidingWindowThrottle):
    """
    Лимит попыток входа / проверки PIN.

    5 попыток за 15 минут на один identity, затем блок на 30 минут.
    """
    profile = RateLimitProfileName.AUTH.value

    def get_cache_key(self, request, view):
        data = getattr(request, 'data', None) or {}
        if hasattr(data, 'get'):
            for field in IDENTITY_FIELDS:
                value = data.get(field)
                # CharField примет и число из JSON: ключ тот же, что увидит сервис
                if isinstance(value, bool) or not isinstance(value, (str, int, float)):
                    continue
                identity = normalize_identity(str(value))
                if identity:
                    return identity
        return self.get_ident(request)
