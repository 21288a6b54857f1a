# apps/catalog/models.py
"""
Модели каталога: заведения (Vendor) и позиции меню (MenuItem).

Для ядра ценообразования эти данные только для чтения:
- Vendor.minimum_order - минимальная сумма заказа
- MenuItem.price - единственный источник правды о цене позиции
- MenuItem.is_available - позицию можно заказать
"""

import uuid
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models


# =============================================================================
# ЗАВЕДЕНИЯ
# =============================================================================

class Vendor(models.Model):
    """
    Заведение (кофейня, ресторан), принимающее заказы.

    Управляется vendor-management, ядро только читает.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    name = models.CharField(
        max_length=255,
        verbose_name='Название'
    )

    address = models.TextField(
        blank=True,
        verbose_name='Адрес'
    )

    minimum_order = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('25.00'),
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name='Минимальный заказ'
    )

    is_active = models.BooleanField(
        default=True,
        verbose_name='Активно'
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name='Дата создания'
    )

    class Meta:
        db_table = 'vendors'
        ordering = ['name']
        verbose_name = 'Заведение'
        verbose_name_plural = 'Заведения'

    def __str__(self) -> str:
        return self.name


# =============================================================================
# ПОЗИЦИИ МЕНЮ
# =============================================================================

class MenuItem(models.Model):
    """Позиция меню заведения с канонической ценой."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    vendor = models.ForeignKey(
        Vendor,
        on_delete=models.CASCADE,
        related_name='menu_items',
        verbose_name='Заведение'
    )

    name = models.CharField(
        max_length=255,
        verbose_name='Название'
    )

    category = models.CharField(
        max_length=100,
        blank=True,
        verbose_name='Категория'
    )

    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        verbose_name='Цена'
    )

    is_available = models.BooleanField(
        default=True,
        verbose_name='Доступна'
    )

    class Meta:
        db_table = 'menu_items'
        ordering = ['vendor', 'category', 'name']
        verbose_name = 'Позиция меню'
        verbose_name_plural = 'Позиции меню'
        indexes = [
            models.Index(fields=['vendor', 'is_available'], name='menu_items_vendor_avail_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.price})"

    def clean(self) -> None:
        """Валидация цены."""
        if self.price is not None and self.price < Decimal('0'):
            raise ValidationError({'price': 'Цена не может быть отрицательной'})
