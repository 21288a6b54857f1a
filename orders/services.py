# apps/orders/services.py
"""
Сервисы для сохранённых заказов.

ОСНОВНЫЕ СЕРВИСЫ:
- OrderRepository: Чтение сохранённых заказов (для сверки)
- OrderPlacementService: Сохранение заказа по погашенному checkout-токену
"""

from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction

from catalog.models import Vendor
from catalog.services import parse_catalog_id

from .checkout import CheckoutCredential, hash_token
from .models import ScheduledOrder

logger = logging.getLogger(__name__)


class OrderRepository:
    """Read-контракт хранилища заказов: get_order(order_id)."""

    def get_order(self, order_id) -> Optional[ScheduledOrder]:
        pk = parse_catalog_id(order_id)
        if pk is None:
            return None
        return ScheduledOrder.objects.select_related('vendor').filter(pk=pk).first()


class OrderPlacementService:
    """
    Сохранение заказа после списания.

    Вызывается платёжным модулем ПОСЛЕ consume(): суммы берутся
    из расчёта, привязанного к токену, а не от клиента.
    """

    @classmethod
    @transaction.atomic
    def place_order(
            cls,
            *,
            credential: CheckoutCredential,
            created_by=None,
    ) -> ScheduledOrder:
        """
        Создать ScheduledOrder из погашенного токена.

        Args:
            credential: Погашенный checkout-токен
            created_by: Пользователь (опционально)

        Returns:
            ScheduledOrder
        """
        pricing = credential.pricing
        vendor = Vendor.objects.filter(pk=credential.vendor_id).first()

        items = [
            {
                'menuItemId': item.menu_item_id,
                'name': item.name,
                'quantity': item.quantity,
                'price': str(item.verified_price),
                'notes': item.notes,
            }
            for item in pricing.items
        ]

        order = ScheduledOrder.objects.create(
            vendor=vendor,
            vendor_name=vendor.name if vendor else '',
            items=items,
            subtotal=pricing.subtotal,
            sales_tax=pricing.sales_tax,
            service_fee=pricing.service_fee,
            delivery_fee=pricing.delivery_fee,
            gratuity=pricing.gratuity,
            total=pricing.total,
            gratuity_percent=credential.gratuity_percent,
            delivery_distance_miles=credential.delivery_distance_miles,
            checkout_token_hash=hash_token(credential.token),
            created_by=created_by,
        )

        logger.info(f"Сохранён заказ {order.id} на сумму {order.total}")
        return order
