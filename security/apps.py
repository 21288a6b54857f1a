from django.apps import AppConfig
from django.conf import settings


class SecurityConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'security'
    verbose_name = 'Безопасность'

    def ready(self):
        from .ratelimit import RateLimiter, load_profiles
        from .sweeper import PeriodicSweeper

        self.rate_limiter = RateLimiter(load_profiles(getattr(settings, 'RATE_LIMIT_PROFILES', None)))
        self.sweeper = PeriodicSweeper(getattr(settings, 'RATE_LIMIT_SWEEP_INTERVAL', 60))
        self.sweeper.register(self.rate_limiter.sweep)

        if getattr(settings, 'RATE_LIMIT_SWEEPER_AUTOSTART', True):
            self.sweeper.start()
