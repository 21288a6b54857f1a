# apps/security/ratelimit.py
"""
Sliding-window rate limiter с эскалацией до блокировки.

СОСТОЯНИЯ КЛЮЧА:
- Fresh: записи нет
- Counting: окно открыто, count <= max_attempts
- Blocked: now < blocked_until, запросы отклоняются без увеличения count
- после очистки (sweep) -> снова Fresh

ПРОФИЛИ:
- auth: PIN / логин - окно 15 мин, 5 попыток, блок 30 мин
- api: общий API - окно 60 сек, 100 попыток, блок 60 сек

Параметры профилей отличаются на два порядка, поэтому это два
отдельных именованных профиля, а не один глобальный лимит.

Limiter никогда не бросает исключений на трафик: единственный
сигнал отказа - RateLimitDecision(allowed=False, retry_after=...).
Состояние в памяти процесса, после рестарта начинается с нуля.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Union

from django.apps import apps
from django.core.exceptions import ImproperlyConfigured
from django.db import models

logger = logging.getLogger(__name__)

BLOCK_GRACE_SECONDS = 60
STALE_WINDOW_SECONDS = 3600


class RateLimitProfileName(models.TextChoices):
    """Допустимые профили лимитов."""
    AUTH = 'auth', 'Авторизация (PIN / логин)'
    API = 'api', 'Общий API'


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class RateLimitProfile:
    """Параметры одного профиля (секунды)."""
    name: str
    window_seconds: float
    max_attempts: int
    block_seconds: float

    @classmethod
    def from_config(cls, name: str, config: Mapping[str, Any]) -> 'RateLimitProfile':
        """
        Профиль из settings.RATE_LIMIT_PROFILES[name].

        Raises:
            ImproperlyConfigured: неизвестный профиль или неверные числа
        """
        if name not in RateLimitProfileName.values:
            raise ImproperlyConfigured(
                f"RATE_LIMIT_PROFILES: неизвестный профиль {name!r}, "
                f"допустимы {RateLimitProfileName.values}"
            )
        expected = {'window_seconds', 'max_attempts', 'block_seconds'}
        unknown = set(config) - expected
        if unknown:
            raise ImproperlyConfigured(f"RATE_LIMIT_PROFILES[{name}]: лишние ключи {sorted(unknown)}")
        try:
            profile = cls(
                name=name,
                window_seconds=float(config['window_seconds']),
                max_attempts=int(config['max_attempts']),
                block_seconds=float(config['block_seconds']),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ImproperlyConfigured(f"RATE_LIMIT_PROFILES[{name}]: {e}") from e

        if profile.window_seconds <= 0 or profile.block_seconds <= 0 or profile.max_attempts <= 0:
            raise ImproperlyConfigured(f"RATE_LIMIT_PROFILES[{name}]: значения должны быть > 0")
        return profile


DEFAULT_PROFILES = {
    RateLimitProfileName.AUTH.value: RateLimitProfile(
        name=RateLimitProfileName.AUTH.value,
        window_seconds=15 * 60,
        max_attempts=5,
        block_seconds=30 * 60,
    ),
    RateLimitProfileName.API.value: RateLimitProfile(
        name=RateLimitProfileName.API.value,
        window_seconds=60,
        max_attempts=100,
        block_seconds=60,
    ),
}


def load_profiles(config: Optional[Mapping[str, Mapping[str, Any]]]) -> Dict[str, RateLimitProfile]:
    """Профили по умолчанию, перекрытые значениями из настроек."""
    profiles: Dict[str, RateLimitProfile] = dict(DEFAULT_PROFILES)
    for name, values in (config or {}).items():
        profiles[name] = RateLimitProfile.from_config(name, values)
    return profiles


@dataclass
class RateLimitEntry:
    """Счётчик одного ключа. Меняется только внутри RateLimiter."""
    count: int
    first_request: float
    blocked_until: Optional[float] = None


@dataclass(frozen=True)
class RateLimitDecision:
    """Ответ limiter-а на один запрос."""
    allowed: bool
    remaining: int
    retry_after: Optional[int] = None


# =============================================================================
# RATE LIMITER
# =============================================================================

class RateLimiter:
    """
    Таблица счётчиков под одним Lock.

    Критическая секция O(1), конкуренция низкая - шардирование
    и блокировки по ключу не нужны.

    Ключи хранятся как "<профиль>:<ключ>", профили не пересекаются.
    """

    def __init__(
            self,
            profiles: Optional[Mapping[str, RateLimitProfile]] = None,
            clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.profiles: Dict[str, RateLimitProfile] = dict(profiles or load_profiles(None))
        self.clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, RateLimitEntry] = {}

    def get_profile(self, profile: Union[str, RateLimitProfile]) -> RateLimitProfile:
        if isinstance(profile, RateLimitProfile):
            return profile
        try:
            return self.profiles[str(profile)]
        except KeyError:
            raise ImproperlyConfigured(f"Профиль rate limit {profile!r} не настроен") from None

    def check(self, key: str, profile: Union[str, RateLimitProfile]) -> RateLimitDecision:
        """
        Учесть попытку и решить, пропускать ли её.

        Args:
            key: Идентификатор клиента (IP или identity)
            profile: Имя профиля или RateLimitProfile

        Returns:
            RateLimitDecision
        """
        config = self.get_profile(profile)
        entry_key = f"{config.name}:{key}"

        with self._lock:
            now = self.clock()
            entry = self._entries.get(entry_key)

            if entry is not None and entry.blocked_until is not None:
                if now < entry.blocked_until:
                    return RateLimitDecision(
                        allowed=False,
                        remaining=0,
                        retry_after=math.ceil(entry.blocked_until - now),
                    )
                # Блокировка истекла - начинаем с чистого окна
                entry = None

            if entry is None or now - entry.first_request > config.window_seconds:
                self._entries[entry_key] = RateLimitEntry(count=1, first_request=now)
                return RateLimitDecision(allowed=True, remaining=config.max_attempts - 1)

            entry.count += 1

            if entry.count > config.max_attempts:
                entry.blocked_until = now + config.block_seconds
                blocked = True
            else:
                blocked = False
                remaining = config.max_attempts - entry.count

        if blocked:
            logger.warning(
                f"Rate limit [{config.name}] превышен для {key}: "
                f"блокировка на {config.block_seconds:.0f} сек"
            )
            return RateLimitDecision(
                allowed=False,
                remaining=0,
                retry_after=math.ceil(config.block_seconds),
            )
        return RateLimitDecision(allowed=True, remaining=remaining)

    def reset(self, key: str, profile: Union[str, RateLimitProfile]) -> None:
        """Забыть ключ (например, после успешного ввода PIN)."""
        config = self.get_profile(profile)
        with self._lock:
            self._entries.pop(f"{config.name}:{key}", None)

    def sweep(self, now: Optional[float] = None) -> int:
        """
        Удалить неактивные записи.

        Удаляются записи, у которых блокировка истекла больше минуты
        назад, либо окно старше часа (и блокировки сейчас нет).

        Returns:
            Количество удалённых записей
        """
        removed = 0
        with self._lock:
            now = self.clock() if now is None else now
            for entry_key in list(self._entries):
                entry = self._entries[entry_key]
                if entry.blocked_until is not None:
                    if now > entry.blocked_until + BLOCK_GRACE_SECONDS:
                        del self._entries[entry_key]
                        removed += 1
                elif now - entry.first_request > STALE_WINDOW_SECONDS:
                    del self._entries[entry_key]
                    removed += 1

        if removed:
            logger.debug(f"Rate limiter: удалено записей {removed}, осталось {len(self)}")
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def get_rate_limiter() -> RateLimiter:
    """Экземпляр, созданный при старте приложения security."""
    return apps.get_app_config('security').rate_limiter
