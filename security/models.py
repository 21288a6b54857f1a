# apps/security/models.py
"""
Модели модуля security.

AccessPin - PIN для входа в служебный интерфейс (курьеры, кухня).
PIN хранится только в виде хэша (django.contrib.auth.hashers).
"""

from django.contrib.auth.hashers import check_password, make_password
from django.db import models


class AccessPin(models.Model):
    """PIN-код, привязанный к identity (телефон, email или логин)."""

    identity = models.CharField(
        max_length=255,
        unique=True,
        verbose_name='Идентификатор',
        help_text='Телефон, email или логин в нижнем регистре'
    )

    pin_hash = models.CharField(
        max_length=128,
        verbose_name='Хэш PIN'
    )

    is_active = models.BooleanField(
        default=True,
        verbose_name='Активен'
    )

    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name='Дата обновления'
    )

    class Meta:
        db_table = 'access_pins'
        verbose_name = 'PIN доступа'
        verbose_name_plural = 'PIN доступа'

    def __str__(self):
        return self.identity

    def save(self, *args, **kwargs):
        self.identity = self.identity.strip().lower()
        super().save(*args, **kwargs)

    def set_pin(self, raw_pin: str) -> None:
        self.pin_hash = make_password(raw_pin)

    def check_pin(self, raw_pin: str) -> bool:
        return check_password(raw_pin, self.pin_hash)
