# apps/orders/admin.py
"""Django Admin для заказов."""

from django.contrib import admin

from .models import CheckoutSession, ScheduledOrder
from .reconciliation import ReconciliationChecker


@admin.register(ScheduledOrder)
class ScheduledOrderAdmin(admin.ModelAdmin):
    """Admin для сохранённых заказов."""

    list_display = ['id', 'vendor_name', 'status', 'subtotal', 'gratuity', 'total', 'created_at']
    list_filter = ['status', 'created_at']
    search_fields = ['id', 'vendor_name', 'checkout_token_hash']
    readonly_fields = [
        'id', 'vendor', 'vendor_name', 'items',
        'subtotal', 'sales_tax', 'service_fee', 'delivery_fee', 'gratuity', 'total',
        'gratuity_percent', 'delivery_distance_miles',
        'checkout_token_hash', 'created_by', 'created_at', 'updated_at',
    ]
    date_hierarchy = 'created_at'

    fieldsets = (
        (None, {'fields': ('id', 'vendor', 'vendor_name', 'status', 'created_by')}),
        ('Позиции', {'fields': ('items',)}),
        ('Суммы', {'fields': (
            'subtotal', 'sales_tax', 'service_fee', 'delivery_fee',
            'gratuity_percent', 'gratuity', 'total', 'delivery_distance_miles',
        )}),
        ('Служебное', {'fields': ('checkout_token_hash', 'created_at', 'updated_at')}),
    )

    actions = ['reconcile_orders']

    def reconcile_orders(self, request, queryset):
        """Сверить выбранные заказы с текущим каталогом"""
        results = ReconciliationChecker().reconcile_many(queryset.select_related('vendor'))
        mismatched = [result.order_id for result in results if not result.valid]
        if mismatched:
            self.message_user(
                request,
                f'Расхождения в {len(mismatched)} из {len(results)} заказов: {", ".join(mismatched)}'
            )
        else:
            self.message_user(request, f'Проверено {len(results)} заказов, расхождений нет')

    reconcile_orders.short_description = 'Сверить с каталогом'


@admin.register(CheckoutSession)
class CheckoutSessionAdmin(admin.ModelAdmin):
    """Admin для checkout-сессий (только просмотр)."""

    list_display = ['token_hash', 'vendor', 'total', 'issued_at', 'expires_at', 'consumed_at']
    list_filter = ['issued_at']
    search_fields = ['token_hash']
    readonly_fields = [
        'token_hash', 'vendor', 'pricing', 'total', 'gratuity_percent',
        'delivery_distance_miles', 'issued_at', 'expires_at', 'consumed_at',
    ]

    def has_add_permission(self, request):
        return False
