# apps/orders/models.py
"""
Модели заказов и checkout-сессий.

МОДЕЛИ:
- ScheduledOrder: Сохранённый заказ (после оплаты по checkout-токену)
- CheckoutSession: Выданный checkout-токен (хранилище 'database')

WORKFLOW:
1. Клиент отправляет корзину -> расчёт цены на сервере
2. Расчёт без ошибок -> CheckoutSession (токен на 30 минут)
3. Платёжный модуль списывает сумму и погашает токен -> ScheduledOrder
4. ReconciliationChecker периодически пересчитывает ScheduledOrder
"""

from __future__ import annotations

import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from catalog.models import Vendor


def _money_field(verbose_name: str, **kwargs) -> models.DecimalField:
    kwargs.setdefault('default', Decimal('0.00'))
    return models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name=verbose_name,
        **kwargs
    )


# =============================================================================
# СТАТУСЫ ЗАКАЗОВ
# =============================================================================

class OrderStatus(models.TextChoices):
    """Статусы доставки заказа."""
    SCHEDULED = 'scheduled', _('Запланирован')
    CONFIRMED = 'confirmed', _('Подтверждён')
    PREPARING = 'preparing', _('Готовится')
    OUT_FOR_DELIVERY = 'out_for_delivery', _('В пути')
    DELIVERED = 'delivered', _('Доставлен')
    CANCELLED = 'cancelled', _('Отменён')


# =============================================================================
# СОХРАНЁННЫЕ ЗАКАЗЫ
# =============================================================================

class ScheduledOrder(models.Model):
    """
    Заказ, оплаченный по checkout-токену.

    Суммы сохраняются такими, какими их посчитал PricingEngine.
    gratuity_percent хранится явно: сверка не восстанавливает
    процент из gratuity / subtotal (кроме старых записей, где он NULL).

    items - JSON: [{menuItemId, name, quantity, price, notes}]
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
        verbose_name='Заведение'
    )

    vendor_name = models.CharField(
        max_length=255,
        blank=True,
        verbose_name='Название заведения',
        help_text='Денормализовано для отображения'
    )

    items = models.JSONField(
        default=list,
        verbose_name='Позиции'
    )

    # Суммы
    subtotal = _money_field('Подытог')
    sales_tax = _money_field('Налог с продаж')
    service_fee = _money_field('Сервисный сбор')
    delivery_fee = _money_field('Доставка')
    gratuity = _money_field('Чаевые')
    total = _money_field('Итого')

    gratuity_percent = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name='Процент чаевых',
        help_text='Выбранный клиентом процент (NULL у старых заказов)'
    )

    delivery_distance_miles = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name='Расстояние доставки (мили)'
    )

    status = models.CharField(
        max_length=30,
        choices=OrderStatus.choices,
        default=OrderStatus.SCHEDULED,
        verbose_name='Статус'
    )

    checkout_token_hash = models.CharField(
        max_length=64,
        blank=True,
        db_index=True,
        verbose_name='Хэш checkout-токена'
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='scheduled_orders',
        verbose_name='Кто оформил'
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Дата создания'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Дата обновления'
    )

    class Meta:
        db_table = 'scheduled_orders'
        ordering = ['-created_at']
        verbose_name = 'Заказ'
        verbose_name_plural = 'Заказы'
        indexes = [
            models.Index(fields=['vendor', '-created_at'], name='sched_orders_vendor_idx'),
            models.Index(fields=['status', '-created_at'], name='sched_orders_status_idx'),
        ]

    def __str__(self) -> str:
        return f"Заказ {self.id} на {self.total}"


# =============================================================================
# CHECKOUT-СЕССИИ
# =============================================================================

class CheckoutSession(models.Model):
    """
    Выданный checkout-токен.

    Сам токен не хранится - только SHA-256. consumed_at ставится
    платёжным модулем при списании; повторное использование запрещено.
    """

    token_hash = models.CharField(
        max_length=64,
        unique=True,
        verbose_name='Хэш токена'
    )

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.CASCADE,
        related_name='checkout_sessions',
        verbose_name='Заведение'
    )

    pricing = models.JSONField(
        verbose_name='Расчёт цены'
    )

    total = _money_field('Итого')

    gratuity_percent = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        default=Decimal('0'),
        verbose_name='Процент чаевых'
    )

    delivery_distance_miles = models.DecimalField(
        max_digits=6,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name='Расстояние доставки (мили)'
    )

    issued_at = models.DateTimeField(
        default=timezone.now,
        verbose_name='Выдан'
    )

    expires_at = models.DateTimeField(
        db_index=True,
        verbose_name='Истекает'
    )

    consumed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name='Использован'
    )

    class Meta:
        db_table = 'checkout_sessions'
        ordering = ['-issued_at']
        verbose_name = 'Checkout-сессия'
        verbose_name_plural = 'Checkout-сессии'

    def __str__(self) -> str:
        return f"Checkout {self.token_hash[:8]} на {self.total}"

    @property
    def is_consumed(self) -> bool:
        return self.consumed_at is not None
