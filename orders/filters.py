# apps/orders/filters.py
"""Фильтры для orders."""

import django_filters

from .models import OrderStatus, ScheduledOrder


class ScheduledOrderFilter(django_filters.FilterSet):
    """
    Фильтр для сохранённых заказов.

    Параметры:
    - status: статус заказа (scheduled, confirmed, ...)
    - vendor: UUID заведения
    - created_from: дата создания от (ISO 8601)
    - created_to: дата создания до (ISO 8601)
    """

    status = django_filters.ChoiceFilter(choices=OrderStatus.choices)
    vendor = django_filters.UUIDFilter(field_name="vendor_id")
    created_from = django_filters.IsoDateTimeFilter(
        field_name="created_at",
        lookup_expr="gte"
    )
    created_to = django_filters.IsoDateTimeFilter(
        field_name="created_at",
        lookup_expr="lte"
    )

    class Meta:
        model = ScheduledOrder
        fields = ("status", "vendor")
