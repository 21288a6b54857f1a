# apps/orders/reconciliation.py
"""
Сверка сохранённых заказов с актуальным расчётом.

Для заказа заново запускается PricingEngine с теми же заведением,
позициями, расстоянием и процентом чаевых. Итог сравнивается с
сохранённым total.

valid = разница меньше 2 центов. Расхождение означает одно из:
- цена в каталоге изменилась после заказа
- запись заказа изменена вручную
- регрессия в формулах

Расхождение только фиксируется (WARNING в лог) - заказ НЕ исправляется.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import OrderNotFound
from .pricing import OrderItemRequest, PricingEngine, round_money
from .services import OrderRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationResult:
    """Результат сверки одного заказа."""
    order_id: str
    valid: bool
    calculated_total: Decimal
    stored_total: Decimal
    difference: Decimal
    errors: tuple = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            'order_id': self.order_id,
            'valid': self.valid,
            'calculated_total': self.calculated_total,
            'stored_total': self.stored_total,
            'difference': self.difference,
            'errors': list(self.errors),
        }


class ReconciliationChecker:
    """Пересчёт сохранённых заказов для поиска расхождений."""

    def __init__(
            self,
            engine: Optional[PricingEngine] = None,
            orders: Optional[OrderRepository] = None,
    ) -> None:
        self.engine = engine or PricingEngine()
        self.orders = orders or OrderRepository()

    @property
    def tolerance(self) -> Decimal:
        return self.engine.config.reconciliation_tolerance

    def reconcile(self, order_id) -> ReconciliationResult:
        """
        Сверить заказ по ID.

        Raises:
            OrderNotFound: заказа нет
        """
        order = self.orders.get_order(order_id)
        if order is None:
            raise OrderNotFound(order_id)
        return self.reconcile_order(order)

    def reconcile_order(self, order) -> ReconciliationResult:
        """Сверить уже загруженный заказ."""
        items = [OrderItemRequest.from_dict(item) for item in (order.items or [])]

        recalculated = self.engine.validate_and_price(
            str(order.vendor_id) if order.vendor_id else '',
            items,
            delivery_distance_miles=order.delivery_distance_miles,
            gratuity_percent=self.gratuity_percent_for(order),
        )

        stored_total = round_money(order.total)
        difference = abs(recalculated.total - stored_total)
        valid = difference < self.tolerance

        result = ReconciliationResult(
            order_id=str(order.pk),
            valid=valid,
            calculated_total=recalculated.total,
            stored_total=stored_total,
            difference=difference,
            errors=recalculated.errors,
        )

        if not valid:
            logger.warning(
                f"Расхождение в заказе {order.pk}: сохранено {stored_total}, "
                f"пересчитано {recalculated.total} (разница {difference})"
            )
        return result

    def reconcile_many(self, orders: Iterable) -> List[ReconciliationResult]:
        """Сверить набор заказов (для периодической задачи)."""
        return [self.reconcile_order(order) for order in orders]

    @staticmethod
    def gratuity_percent_for(order) -> Decimal:
        """
        Процент чаевых заказа.

        Сохранённый процент в приоритете. Для старых записей без него -
        gratuity / subtotal * 100 (может расходиться с выбранным
        клиентом из-за округления).
        """
        if order.gratuity_percent is not None:
            return Decimal(order.gratuity_percent)
        subtotal = Decimal(order.subtotal or 0)
        if subtotal == 0:
            return Decimal('0')
        return Decimal(order.gratuity or 0) / subtotal * Decimal('100')
