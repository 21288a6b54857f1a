# apps/catalog/services.py
"""
Сервис чтения каталога для ядра ценообразования.

CatalogLookup - единственная точка, через которую PricingEngine
получает заведения и цены. Только чтение, без кэширования:
каждый расчёт видит актуальный снимок (read committed).

Ошибки инфраструктуры (БД недоступна) не перехватываются -
решение о повторе принимает вызывающий код.
"""

from __future__ import annotations

import logging
import uuid
from typing import List, Optional, Union

from .models import Vendor, MenuItem

logger = logging.getLogger(__name__)


def parse_catalog_id(value: Union[str, uuid.UUID, None]) -> Optional[uuid.UUID]:
    """UUID из строки клиента; мусор = None, а не исключение."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, AttributeError, TypeError):
        return None


class CatalogLookup:
    """
    Read-only доступ к заведениям и меню.

    Методы:
    - get_vendor(vendor_id) -> Vendor | None
    - get_menu_items(vendor_id) -> List[MenuItem]
    """

    def get_vendor(self, vendor_id) -> Optional[Vendor]:
        """
        Активное заведение по ID.

        Неактивное заведение для checkout считается отсутствующим.
        """
        pk = parse_catalog_id(vendor_id)
        if pk is None:
            logger.debug(f"Некорректный ID заведения: {vendor_id!r}")
            return None
        return Vendor.objects.filter(pk=pk, is_active=True).first()

    def get_menu_items(self, vendor_id) -> List[MenuItem]:
        """Все позиции меню заведения, включая недоступные."""
        pk = parse_catalog_id(vendor_id)
        if pk is None:
            return []
        return list(MenuItem.objects.filter(vendor_id=pk))
