# apps/security/middleware.py
"""
Middleware общего rate limit-а для API.

Каждый запрос под RATE_LIMIT_MIDDLEWARE_PATHS учитывается в профиле
api по IP клиента. Ответ получает заголовок X-RateLimit-Remaining,
при превышении - 429 с Retry-After, view не вызывается.
"""

from django.conf import settings
from django.http import JsonResponse

from .ratelimit import RateLimitProfileName, get_rate_limiter
from .throttles import get_client_ip


class RateLimitMiddleware:

    def __init__(self, get_response):
        self.get_response = get_response
        self.paths = tuple(getattr(settings, 'RATE_LIMIT_MIDDLEWARE_PATHS', ['/api/']))

    def __call__(self, request):
        if not request.path.startswith(self.paths):
            return self.get_response(request)

        decision = get_rate_limiter().check(get_client_ip(request), RateLimitProfileName.API.value)

        if not decision.allowed:
            response = JsonResponse(
                {'error': 'Too many requests', 'retry_after': decision.retry_after},
                status=429,
            )
            response['Retry-After'] = str(decision.retry_after)
        else:
            response = self.get_response(request)

        response['X-RateLimit-Remaining'] = str(decision.remaining)
        return response
