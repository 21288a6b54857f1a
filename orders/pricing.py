# apps/orders/pricing.py
"""
Серверный расчёт цены заказа.

Клиент присылает корзину, но цены и итог мы НЕ берём от клиента:
- цена позиции из каталога (MenuItem.price)
- ad-hoc позиция (без ссылки на меню) - цена клиента, но явно заданная
- сервисный сбор, налог, доставка, чаевые считаются здесь

ОКРУГЛЕНИЕ:
Каждая производная сумма округляется через round_money()
(ROUND_HALF_UP до центов) сразу после вычисления. Итог собирается
из уже округлённых слагаемых - иначе сверка с сохранённым заказом
расходится на копейки.

ОШИБКИ:
PricingEngine не бросает исключений на плохие данные корзины.
Все проблемы собираются в OrderPricing.errors, чтобы клиент увидел
их разом. Исключения пробрасываются только от инфраструктуры
(каталог недоступен).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional, Tuple

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from catalog.services import CatalogLookup, parse_catalog_id

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')
ZERO = Decimal('0.00')


# =============================================================================
# ОКРУГЛЕНИЕ
# =============================================================================

def round_money(value) -> Decimal:
    """
    Округление до центов, half-up.

    float приводится через str, чтобы не тянуть двоичный хвост
    (0.1 + 0.2 и т.п.).
    """
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value) -> Optional[Decimal]:
    """Decimal из ввода клиента; None если значение не число."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    if not result.is_finite():
        return None
    return result


# =============================================================================
# КОНФИГУРАЦИЯ
# =============================================================================

@dataclass(frozen=True)
class PricingConfig:
    """
    Ставки и лимиты расчёта.

    Значения по умолчанию совпадают с settings.ORDER_PRICING.
    """

    service_fee_rate: Decimal = Decimal('0.15')
    sales_tax_rate: Decimal = Decimal('0.0975')
    delivery_base_fee: Decimal = Decimal('5.99')
    delivery_per_mile_fee: Decimal = Decimal('1.50')
    delivery_max_fee: Decimal = Decimal('15.00')
    free_delivery_threshold: Decimal = Decimal('150.00')
    default_delivery_distance_miles: Decimal = Decimal('5')
    reconciliation_tolerance: Decimal = Decimal('0.02')

    _SETTINGS_KEYS = {
        'SERVICE_FEE_RATE': 'service_fee_rate',
        'SALES_TAX_RATE': 'sales_tax_rate',
        'DELIVERY_BASE_FEE': 'delivery_base_fee',
        'DELIVERY_PER_MILE_FEE': 'delivery_per_mile_fee',
        'DELIVERY_MAX_FEE': 'delivery_max_fee',
        'FREE_DELIVERY_THRESHOLD': 'free_delivery_threshold',
        'DEFAULT_DELIVERY_DISTANCE_MILES': 'default_delivery_distance_miles',
        'RECONCILIATION_TOLERANCE': 'reconciliation_tolerance',
    }

    @classmethod
    def from_settings(cls) -> 'PricingConfig':
        """
        Конфигурация из settings.ORDER_PRICING.

        Неизвестный ключ или не-число - ImproperlyConfigured при старте,
        а не ошибка в середине checkout.
        """
        raw: Dict[str, Any] = getattr(settings, 'ORDER_PRICING', {}) or {}
        values = {}
        for key, value in raw.items():
            attr = cls._SETTINGS_KEYS.get(key)
            if attr is None:
                raise ImproperlyConfigured(f"ORDER_PRICING: неизвестный ключ {key}")
            parsed = to_decimal(value)
            if parsed is None or parsed < 0:
                raise ImproperlyConfigured(
                    f"ORDER_PRICING[{key}] должно быть неотрицательным числом, получено {value!r}"
                )
            values[attr] = parsed
        return cls(**values)


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class OrderItemRequest:
    """
    Позиция корзины от клиента (недоверенные данные).

    price используется только для ad-hoc позиций без menu_item_id.
    """
    name: str
    quantity: Any
    menu_item_id: Optional[str] = None
    price: Optional[Decimal] = None
    notes: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderItemRequest':
        """Из JSON формата ScheduledOrder.items (camelCase ключи)."""
        menu_item_id = data.get('menuItemId', data.get('menu_item_id'))
        return cls(
            name=str(data.get('name') or ''),
            quantity=data.get('quantity'),
            menu_item_id=str(menu_item_id) if menu_item_id else None,
            price=to_decimal(data.get('price')),
            notes=data.get('notes') or None,
        )


@dataclass(frozen=True)
class ValidatedOrderItem:
    """Позиция после проверки: цена подтверждена каталогом или явно задана."""
    name: str
    quantity: int
    verified_price: Decimal
    line_total: Decimal
    menu_item_id: Optional[str] = None
    notes: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        return {
            'menuItemId': self.menu_item_id,
            'name': self.name,
            'quantity': self.quantity,
            'price': str(self.verified_price),
            'lineTotal': str(self.line_total),
            'notes': self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ValidatedOrderItem':
        return cls(
            name=data['name'],
            quantity=int(data['quantity']),
            verified_price=Decimal(data['price']),
            line_total=Decimal(data['lineTotal']),
            menu_item_id=data.get('menuItemId'),
            notes=data.get('notes'),
        )


@dataclass(frozen=True)
class OrderPricing:
    """
    Результат расчёта.

    errors не пустой => расчёт недействителен: по нему нельзя
    выдавать checkout-токен и списывать деньги.
    """
    items: Tuple[ValidatedOrderItem, ...] = ()
    subtotal: Decimal = ZERO
    sales_tax: Decimal = ZERO
    service_fee: Decimal = ZERO
    delivery_fee: Decimal = ZERO
    gratuity: Decimal = ZERO
    total: Decimal = ZERO
    errors: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def as_dict(self) -> Dict[str, Any]:
        """Сериализация для JSON (CheckoutSession.pricing)."""
        return {
            'items': [item.as_dict() for item in self.items],
            'subtotal': str(self.subtotal),
            'sales_tax': str(self.sales_tax),
            'service_fee': str(self.service_fee),
            'delivery_fee': str(self.delivery_fee),
            'gratuity': str(self.gratuity),
            'total': str(self.total),
            'errors': list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'OrderPricing':
        return cls(
            items=tuple(ValidatedOrderItem.from_dict(item) for item in data.get('items', [])),
            subtotal=Decimal(data['subtotal']),
            sales_tax=Decimal(data['sales_tax']),
            service_fee=Decimal(data['service_fee']),
            delivery_fee=Decimal(data['delivery_fee']),
            gratuity=Decimal(data.get('gratuity', '0.00')),
            total=Decimal(data['total']),
            errors=tuple(data.get('errors', [])),
        )


# =============================================================================
# PRICING ENGINE
# =============================================================================

class PricingEngine:
    """
    Проверка корзины по каталогу и расчёт итоговой суммы.

    Stateless: безопасно вызывать из любого количества запросов.

    АЛГОРИТМ:
    1. Заведение (нет - одна ошибка, все суммы 0)
    2. Меню заведения -> словарь по ID
    3. Каждая позиция: каталог (есть + доступна) или ad-hoc (явная цена)
    4. subtotal = сумма line_total
    5. Проверка минимального заказа
    6. Сервисный сбор и налог от subtotal
    7. Доставка: бесплатно от порога, иначе база + миля, с потолком
    8. Чаевые = subtotal * процент / 100
    9. total = сумма округлённых слагаемых
    """

    def __init__(
            self,
            catalog: Optional[CatalogLookup] = None,
            config: Optional[PricingConfig] = None,
    ) -> None:
        self.catalog = catalog or CatalogLookup()
        self.config = config or PricingConfig.from_settings()

    def validate_and_price(
            self,
            vendor_id,
            items: Iterable[OrderItemRequest],
            delivery_distance_miles=None,
            gratuity_percent=0,
    ) -> OrderPricing:
        """
        Полный расчёт цены заказа.

        Args:
            vendor_id: ID заведения
            items: Позиции корзины клиента
            delivery_distance_miles: Расстояние доставки (None = по умолчанию 5)
            gratuity_percent: Процент чаевых от subtotal

        Returns:
            OrderPricing (с errors, если что-то не так)
        """
        errors: List[str] = []

        vendor = self.catalog.get_vendor(vendor_id)
        if vendor is None:
            logger.info(f"Расчёт отклонён: заведение {vendor_id} не найдено")
            return OrderPricing(errors=(f"vendor not found: {vendor_id}",))

        menu = {
            str(menu_item.id): menu_item
            for menu_item in self.catalog.get_menu_items(vendor_id)
        }

        validated: List[ValidatedOrderItem] = []
        for item in items:
            checked = self._validate_item(item, menu, errors)
            if checked is not None:
                validated.append(checked)

        subtotal = round_money(sum((item.line_total for item in validated), ZERO))

        minimum_order = round_money(vendor.minimum_order or ZERO)
        if subtotal < minimum_order:
            errors.append(
                f"minimum order of ${minimum_order:.2f} not met (current: ${subtotal:.2f})"
            )

        service_fee = round_money(subtotal * self.config.service_fee_rate)
        sales_tax = round_money(subtotal * self.config.sales_tax_rate)
        delivery_fee = self.calculate_delivery_fee(
            subtotal, self._resolve_distance(delivery_distance_miles, errors)
        )
        gratuity = self._calculate_gratuity(subtotal, gratuity_percent, errors)

        total = round_money(subtotal + sales_tax + service_fee + delivery_fee + gratuity)

        if errors:
            logger.debug(f"Расчёт для заведения {vendor_id}: {len(errors)} ошибок")

        return OrderPricing(
            items=tuple(validated),
            subtotal=subtotal,
            sales_tax=sales_tax,
            service_fee=service_fee,
            delivery_fee=delivery_fee,
            gratuity=gratuity,
            total=total,
            errors=tuple(errors),
        )

    # =========================================================================
    # ДОСТАВКА
    # =========================================================================

    def calculate_delivery_fee(self, subtotal: Decimal, distance_miles: Decimal) -> Decimal:
        """
        Стоимость доставки.

        subtotal >= порога -> 0, иначе min(база + миля * расстояние, потолок).
        """
        cfg = self.config
        if subtotal >= cfg.free_delivery_threshold:
            return ZERO
        fee = cfg.delivery_base_fee + cfg.delivery_per_mile_fee * distance_miles
        return round_money(min(fee, cfg.delivery_max_fee))

    # =========================================================================
    # ВНУТРЕННИЕ ПРОВЕРКИ
    # =========================================================================

    def _validate_item(
            self,
            item: OrderItemRequest,
            menu: Dict[str, Any],
            errors: List[str],
    ) -> Optional[ValidatedOrderItem]:
        """Проверка одной позиции; None = позиция пропущена, ошибка записана."""
        quantity = item.quantity
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            errors.append(f"invalid quantity for {item.name}: {quantity}")
            return None

        if item.menu_item_id:
            menu_item = self._find_menu_item(item.menu_item_id, menu)
            if menu_item is None:
                errors.append(f"menu item not found: {item.name} ({item.menu_item_id})")
                return None
            if not menu_item.is_available:
                errors.append(f"menu item unavailable: {menu_item.name}")
                return None
            verified_price = round_money(menu_item.price)
            name = menu_item.name
        else:
            # Ad-hoc: цену задаёт клиент, но только явно
            if item.price is None:
                errors.append(f"price required for ad-hoc item: {item.name}")
                return None
            if item.price < 0:
                errors.append(f"invalid price for {item.name}: {item.price}")
                return None
            verified_price = round_money(item.price)
            name = item.name

        return ValidatedOrderItem(
            name=name,
            quantity=quantity,
            verified_price=verified_price,
            line_total=round_money(verified_price * quantity),
            menu_item_id=item.menu_item_id,
            notes=item.notes,
        )

    @staticmethod
    def _find_menu_item(reference: str, menu: Dict[str, Any]):
        menu_item = menu.get(str(reference))
        if menu_item is None:
            parsed = parse_catalog_id(reference)
            if parsed is not None:
                menu_item = menu.get(str(parsed))
        return menu_item

    def _resolve_distance(self, distance_miles, errors: List[str]) -> Decimal:
        if distance_miles is None:
            return self.config.default_delivery_distance_miles
        distance = to_decimal(distance_miles)
        if distance is None or distance < 0:
            errors.append(f"invalid delivery distance: {distance_miles}")
            return self.config.default_delivery_distance_miles
        return distance

    @staticmethod
    def _calculate_gratuity(subtotal: Decimal, gratuity_percent, errors: List[str]) -> Decimal:
        if gratuity_percent is None:
            return ZERO
        percent = to_decimal(gratuity_percent)
        if percent is None or percent < 0:
            errors.append(f"invalid gratuity percent: {gratuity_percent}")
            return ZERO
        return round_money(subtotal * percent / Decimal('100'))

