# apps/orders/checkout.py
"""
Выдача checkout-токенов.

CheckoutIssuer:
1. Считает цену через PricingEngine
2. Есть ошибки -> ValidationFailed, токен НЕ выдаётся, ничего не сохраняется
3. Нет ошибок -> случайный токен (256 бит), привязанный к расчёту, на 30 минут

Токен разрешает ровно одно списание на зафиксированную сумму.
Платёжный модуль погашает его через consume() / invalidate().

ХРАНИЛИЩА:
- InMemoryCredentialStore: словарь под одним Lock (один процесс)
- DatabaseCredentialStore: CheckoutSession (несколько воркеров)
"""

from __future__ import annotations

import hashlib
import logging
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, Optional

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone

from .exceptions import CredentialExpired, CredentialUnknown, ValidationFailed
from .pricing import CENT, OrderItemRequest, OrderPricing, PricingEngine, to_decimal

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 бит энтропии


def hash_token(token: str) -> str:
    """SHA-256 токена - то, что хранится в БД и логах."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def to_stored_decimal(value):
    """
    Процент чаевых / расстояние с точностью колонок заказа (2 знака).

    Нечисловое значение возвращается как есть: его отклонит PricingEngine.
    """
    decimal_value = to_decimal(value)
    if decimal_value is None:
        return value
    try:
        return decimal_value.quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return decimal_value


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class CheckoutCredential:
    """Выданный checkout-токен и расчёт, к которому он привязан."""
    token: str
    vendor_id: str
    pricing: OrderPricing
    gratuity_percent: Decimal
    delivery_distance_miles: Optional[Decimal]
    issued_at: datetime
    expires_at: datetime

    @property
    def total(self) -> Decimal:
        return self.pricing.total

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


# =============================================================================
# ХРАНИЛИЩА
# =============================================================================

class InMemoryCredentialStore:
    """Таблица токенов в памяти процесса под одним Lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._credentials: Dict[str, CheckoutCredential] = {}

    def save(self, credential: CheckoutCredential) -> None:
        with self._lock:
            self._credentials[credential.token] = credential

    def get(self, token: str) -> Optional[CheckoutCredential]:
        with self._lock:
            return self._credentials.get(token)

    def pop(self, token: str, now: datetime) -> Optional[CheckoutCredential]:
        with self._lock:
            return self._credentials.pop(token, None)

    def restore(self, credential: CheckoutCredential) -> None:
        self.save(credential)

    def delete(self, token: str, now: datetime) -> bool:
        with self._lock:
            return self._credentials.pop(token, None) is not None

    def purge_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [
                token for token, credential in self._credentials.items()
                if credential.is_expired(now)
            ]
            for token in expired:
                del self._credentials[token]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._credentials)


class DatabaseCredentialStore:
    """
    Токены в таблице CheckoutSession.

    Хранится только хэш токена. Погашение - select_for_update
    внутри transaction.atomic, чтобы два параллельных списания
    не прошли по одному токену.
    """

    def save(self, credential: CheckoutCredential) -> None:
        from .models import CheckoutSession

        CheckoutSession.objects.create(
            token_hash=hash_token(credential.token),
            vendor_id=credential.vendor_id,
            pricing=credential.pricing.as_dict(),
            total=credential.total,
            gratuity_percent=credential.gratuity_percent,
            delivery_distance_miles=credential.delivery_distance_miles,
            issued_at=credential.issued_at,
            expires_at=credential.expires_at,
        )

    def get(self, token: str) -> Optional[CheckoutCredential]:
        from .models import CheckoutSession

        session = CheckoutSession.objects.filter(
            token_hash=hash_token(token),
            consumed_at__isnull=True,
        ).first()
        return self._to_credential(token, session) if session else None

    @transaction.atomic
    def pop(self, token: str, now: datetime) -> Optional[CheckoutCredential]:
        from .models import CheckoutSession

        session = CheckoutSession.objects.select_for_update().filter(
            token_hash=hash_token(token),
            consumed_at__isnull=True,
        ).first()
        if session is None:
            return None
        session.consumed_at = now
        session.save(update_fields=['consumed_at'])
        return self._to_credential(token, session)

    def restore(self, credential: CheckoutCredential) -> None:
        """Снять отметку о погашении (заказ по токену не сохранился)."""
        from .models import CheckoutSession

        CheckoutSession.objects.filter(
            token_hash=hash_token(credential.token),
            consumed_at__isnull=False,
        ).update(consumed_at=None)

    def delete(self, token: str, now: datetime) -> bool:
        from .models import CheckoutSession

        updated = CheckoutSession.objects.filter(
            token_hash=hash_token(token),
            consumed_at__isnull=True,
        ).update(consumed_at=now)
        return updated > 0

    def purge_expired(self, now: datetime) -> int:
        from .models import CheckoutSession

        deleted, _ = CheckoutSession.objects.filter(expires_at__lte=now).delete()
        return deleted

    @staticmethod
    def _to_credential(token: str, session) -> CheckoutCredential:
        return CheckoutCredential(
            token=token,
            vendor_id=str(session.vendor_id),
            pricing=OrderPricing.from_dict(session.pricing),
            gratuity_percent=session.gratuity_percent,
            delivery_distance_miles=session.delivery_distance_miles,
            issued_at=session.issued_at,
            expires_at=session.expires_at,
        )


CREDENTIAL_STORES = {
    'memory': InMemoryCredentialStore,
    'database': DatabaseCredentialStore,
}


# =============================================================================
# CHECKOUT ISSUER
# =============================================================================

class CheckoutIssuer:
    """
    Выдача, проверка и погашение checkout-токенов.

    Создаётся один раз при старте (OrdersConfig.ready) и
    передаётся туда, где нужен checkout.
    """

    def __init__(
            self,
            engine: PricingEngine,
            store=None,
            ttl: timedelta = timedelta(minutes=30),
            clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self.engine = engine
        self.store = store if store is not None else InMemoryCredentialStore()
        self.ttl = ttl
        self.clock = clock

    def create_checkout(
            self,
            vendor_id,
            items: Iterable[OrderItemRequest],
            gratuity_percent=0,
            delivery_distance_miles=None,
    ) -> CheckoutCredential:
        """
        Рассчитать заказ и выдать токен.

        Raises:
            ValidationFailed: в расчёте есть ошибки (токен не выдан)
        """
        # Расчёт по значениям с точностью колонок заказа
        gratuity_percent = to_stored_decimal(gratuity_percent)
        delivery_distance_miles = to_stored_decimal(delivery_distance_miles)

        pricing = self.engine.validate_and_price(
            vendor_id,
            list(items),
            delivery_distance_miles=delivery_distance_miles,
            gratuity_percent=gratuity_percent,
        )

        if not pricing.is_valid:
            logger.info(
                f"Checkout отклонён для заведения {vendor_id}: {len(pricing.errors)} ошибок"
            )
            raise ValidationFailed(pricing.errors)

        now = self.clock()
        credential = CheckoutCredential(
            token=secrets.token_hex(TOKEN_BYTES),
            vendor_id=str(vendor_id),
            pricing=pricing,
            gratuity_percent=to_decimal(gratuity_percent) or Decimal('0'),
            delivery_distance_miles=to_decimal(delivery_distance_miles),
            issued_at=now,
            expires_at=now + self.ttl,
        )
        self.store.save(credential)

        logger.info(
            f"Выдан checkout-токен {credential.token[:8]}... "
            f"для заведения {vendor_id} на сумму {pricing.total}"
        )
        return credential

    def get(self, token: str) -> CheckoutCredential:
        """
        Действующий токен без погашения.

        Raises:
            CredentialUnknown: токен не выдавался или уже погашен
            CredentialExpired: срок истёк (токен удаляется)
        """
        credential = self.store.get(token)
        if credential is None:
            raise CredentialUnknown("unknown checkout credential")

        now = self.clock()
        if credential.is_expired(now):
            self.store.delete(token, now)
            raise CredentialExpired("checkout credential expired")
        return credential

    def consume(self, token: str) -> CheckoutCredential:
        """
        Погасить токен (одно списание).

        Повторный вызов с тем же токеном -> CredentialUnknown.
        """
        now = self.clock()
        credential = self.store.pop(token, now)
        if credential is None:
            logger.warning(f"Попытка погасить неизвестный токен {token[:8]}...")
            raise CredentialUnknown("unknown checkout credential")

        if credential.is_expired(now):
            logger.warning(f"Попытка погасить просроченный токен {token[:8]}...")
            raise CredentialExpired("checkout credential expired")

        logger.info(f"Checkout-токен {token[:8]}... погашен на сумму {credential.total}")
        return credential

    def redeem(self, token: str, place: Callable[[CheckoutCredential], Any]):
        """
        Погасить токен и сохранить по нему заказ.

        place вызывается с погашенным токеном. Если он падает, токен
        возвращается в хранилище и повторный вызов проходит заново.

        Raises:
            CredentialUnknown, CredentialExpired: как у consume()
        """
        credential = self.consume(token)
        try:
            return place(credential)
        except Exception:
            self.store.restore(credential)
            logger.warning(f"Заказ по токену {token[:8]}... не сохранён, токен восстановлен")
            raise

    def invalidate(self, token: str) -> bool:
        """Отозвать токен. True если токен был действующим."""
        removed = self.store.delete(token, self.clock())
        if removed:
            logger.info(f"Checkout-токен {token[:8]}... отозван")
        return removed

    def purge_expired(self) -> int:
        """Удалить просроченные токены."""
        purged = self.store.purge_expired(self.clock())
        if purged:
            logger.debug(f"Удалено просроченных checkout-токенов: {purged}")
        return purged


def build_checkout_issuer(engine: Optional[PricingEngine] = None) -> CheckoutIssuer:
    """CheckoutIssuer по settings.CHECKOUT."""
    config = getattr(settings, 'CHECKOUT', {}) or {}
    store_name = config.get('CREDENTIAL_STORE', 'memory')
    store_class = CREDENTIAL_STORES.get(store_name)
    if store_class is None:
        raise ImproperlyConfigured(
            f"CHECKOUT['CREDENTIAL_STORE'] должно быть одним из {sorted(CREDENTIAL_STORES)}, "
            f"получено {store_name!r}"
        )
    ttl_minutes = int(config.get('CREDENTIAL_TTL_MINUTES', 30))
    if ttl_minutes <= 0:
        raise ImproperlyConfigured("CHECKOUT['CREDENTIAL_TTL_MINUTES'] должно быть > 0")

    return CheckoutIssuer(
        engine=engine or PricingEngine(),
        store=store_class(),
        ttl=timedelta(minutes=ttl_minutes),
    )


def get_checkout_issuer() -> CheckoutIssuer:
    """Экземпляр, созданный при старте приложения orders."""
    return apps.get_app_config('orders').checkout_issuer
