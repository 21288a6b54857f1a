# apps/orders/serializers.py
"""
Сериализаторы для orders.

Входные сериализаторы проверяют только форму запроса
(типы, обязательные поля). Цены и бизнес-правила проверяет
PricingEngine - его ошибки возвращаются в поле errors.
"""

from typing import List

from rest_framework import serializers

from .models import ScheduledOrder
from .pricing import OrderItemRequest


# =============================================================================
# ЗАПРОСЫ
# =============================================================================

class OrderItemRequestSerializer(serializers.Serializer):
    """
    Позиция корзины.

    menu_item_id - ссылка на меню заведения; без неё позиция ad-hoc
    и обязана содержать price.
    """

    menu_item_id = serializers.CharField(
        max_length=64,
        required=False,
        allow_null=True,
        allow_blank=True
    )
    name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=1)
    price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        required=False,
        allow_null=True,
        help_text='Только для ad-hoc позиций; для позиций меню игнорируется'
    )
    notes = serializers.CharField(
        max_length=500,
        required=False,
        allow_null=True,
        allow_blank=True
    )


class QuoteRequestSerializer(serializers.Serializer):
    """Расчёт цены корзины."""

    vendor_id = serializers.CharField(max_length=64)
    items = OrderItemRequestSerializer(many=True)
    gratuity_percent = serializers.DecimalField(
        max_digits=6,
        decimal_places=2,
        min_value=0,
        default=0
    )
    delivery_distance_miles = serializers.DecimalField(
        max_digits=6,
        decimal_places=2,
        min_value=0,
        required=False,
        allow_null=True,
        help_text='Без значения - 5 миль'
    )

    def get_item_requests(self) -> List[OrderItemRequest]:
        return [
            OrderItemRequest(
                name=item['name'],
                quantity=item['quantity'],
                menu_item_id=item.get('menu_item_id') or None,
                price=item.get('price'),
                notes=item.get('notes') or None,
            )
            for item in self.validated_data['items']
        ]


class CheckoutRequestSerializer(QuoteRequestSerializer):
    """Выдача checkout-токена: тот же расчёт, что и quote."""


class CheckoutTokenSerializer(serializers.Serializer):
    """Токен для погашения / отзыва."""

    token = serializers.CharField(max_length=128)


class GratuitySplitRequestSerializer(serializers.Serializer):
    amount_cents = serializers.IntegerField(min_value=0)


# =============================================================================
# ОТВЕТЫ
# =============================================================================

class ValidatedOrderItemSerializer(serializers.Serializer):
    menu_item_id = serializers.CharField(allow_null=True)
    name = serializers.CharField()
    quantity = serializers.IntegerField()
    price = serializers.DecimalField(source='verified_price', max_digits=10, decimal_places=2)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    notes = serializers.CharField(allow_null=True)


class OrderPricingSerializer(serializers.Serializer):
    """Результат PricingEngine. is_valid=false - платить нельзя."""

    items = ValidatedOrderItemSerializer(many=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    sales_tax = serializers.DecimalField(max_digits=12, decimal_places=2)
    service_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    gratuity = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    errors = serializers.ListField(child=serializers.CharField())
    is_valid = serializers.BooleanField()


class CheckoutCredentialSerializer(serializers.Serializer):
    """Выданный checkout-токен."""

    token = serializers.CharField()
    vendor_id = serializers.CharField()
    total = serializers.DecimalField(max_digits=12, decimal_places=2)
    gratuity_percent = serializers.DecimalField(max_digits=6, decimal_places=2)
    issued_at = serializers.DateTimeField()
    expires_at = serializers.DateTimeField()
    pricing = OrderPricingSerializer()


class ScheduledOrderSerializer(serializers.ModelSerializer):
    """Сохранённый заказ (только чтение)."""

    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = ScheduledOrder
        fields = [
            'id',
            'vendor',
            'vendor_name',
            'items',
            'subtotal',
            'sales_tax',
            'service_fee',
            'delivery_fee',
            'gratuity',
            'gratuity_percent',
            'total',
            'delivery_distance_miles',
            'status',
            'status_display',
            'created_by',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields


class ReconciliationResultSerializer(serializers.Serializer):
    order_id = serializers.CharField()
    valid = serializers.BooleanField()
    calculated_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    stored_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    difference = serializers.DecimalField(max_digits=12, decimal_places=2)
    errors = serializers.ListField(child=serializers.CharField())


class GratuitySplitSerializer(serializers.Serializer):
    driver_tip = serializers.IntegerField()
    internal_tip = serializers.IntegerField()
