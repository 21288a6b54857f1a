# apps/orders/exceptions.py
"""
Исключения checkout и сверки заказов.

Ошибки бизнес-данных (нет позиции, ниже минимума) НЕ являются
исключениями - они собираются в OrderPricing.errors.
Исключения здесь - только то, что прерывает операцию целиком.
"""

from typing import Iterable, Tuple


class InputError(ValueError):
    """Некорректный ввод (количество, обязательное поле) до расчёта цены."""


class CheckoutError(Exception):
    """Базовая ошибка checkout."""


class ValidationFailed(CheckoutError):
    """
    Расчёт содержит ошибки - checkout-токен не выдаётся.

    errors сохраняются списком, чтобы клиент показал все проблемы сразу.
    """

    def __init__(self, errors: Iterable[str]) -> None:
        self.errors: Tuple[str, ...] = tuple(errors)
        super().__init__(f"Order validation failed: {', '.join(self.errors)}")


class CredentialUnknown(CheckoutError):
    """Токен не выдавался, уже использован или отозван."""


class CredentialExpired(CheckoutError):
    """Срок действия токена истёк."""


class OrderNotFound(LookupError):
    """Сохранённый заказ не найден."""

    def __init__(self, order_id) -> None:
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")
