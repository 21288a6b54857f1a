# apps/orders/gratuity.py
"""
Разделение чаевых между курьером и платформой.

Все суммы в центах (int), без потерь:
driver_tip + internal_tip == исходная сумма всегда.

ПРАВИЛО:
- меньше $5.00 - курьеру 0, всё остаётся платформе
- иначе курьеру 25% (half-up), но не меньше $5.00 и не больше $15.00
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

from .exceptions import InputError
from .pricing import round_money

SMALL_TIP_THRESHOLD_CENTS = 500
DRIVER_SHARE = Decimal('0.25')
DRIVER_TIP_FLOOR_CENTS = 500
DRIVER_TIP_CEILING_CENTS = 1500


@dataclass(frozen=True)
class GratuitySplit:
    """Результат разделения чаевых (центы)."""
    driver_tip: int
    internal_tip: int

    def as_dict(self) -> Dict[str, int]:
        return {
            'driver_tip': self.driver_tip,
            'internal_tip': self.internal_tip,
        }


def split_gratuity(amount_cents: int) -> GratuitySplit:
    """
    Разделить чаевые.

    Args:
        amount_cents: Сумма чаевых в центах (>= 0)

    Returns:
        GratuitySplit

    Raises:
        InputError: сумма отрицательная или не целая
    """
    if not isinstance(amount_cents, int) or isinstance(amount_cents, bool):
        raise InputError(f"gratuity amount must be an integer number of cents: {amount_cents!r}")
    if amount_cents < 0:
        raise InputError(f"gratuity amount must be non-negative: {amount_cents}")

    if amount_cents < SMALL_TIP_THRESHOLD_CENTS:
        return GratuitySplit(driver_tip=0, internal_tip=amount_cents)

    share = int((Decimal(amount_cents) * DRIVER_SHARE).quantize(Decimal('1'), rounding=ROUND_HALF_UP))
    driver_tip = min(max(share, DRIVER_TIP_FLOOR_CENTS), DRIVER_TIP_CEILING_CENTS)

    return GratuitySplit(driver_tip=driver_tip, internal_tip=amount_cents - driver_tip)


def split_order_gratuity(order) -> GratuitySplit:
    """Разделить чаевые сохранённого заказа (Decimal в долларах -> центы)."""
    cents = int(round_money(order.gratuity or 0) * 100)
    return split_gratuity(cents)
