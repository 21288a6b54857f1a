# apps/orders/tasks.py
"""
Celery задачи для заказов.

- reconcile_recent_orders: сверка заказов за последние сутки (ежечасно)
- purge_expired_checkout_sessions: удаление просроченных CheckoutSession (каждые 5 минут)
"""

import logging
from datetime import timedelta

from celery import shared_task
from django.utils import timezone

logger = logging.getLogger(__name__)


# =============================================================================
# СВЕРКА
# =============================================================================

@shared_task
def reconcile_recent_orders(hours: int = 24):
    """
    Пересчитать заказы за последние `hours` часов.

    Расхождения логируются ReconciliationChecker-ом (WARNING),
    заказы не изменяются.

    Returns:
        {'checked': n, 'mismatched': m}
    """
    from .models import OrderStatus, ScheduledOrder
    from .reconciliation import ReconciliationChecker

    since = timezone.now() - timedelta(hours=hours)
    orders = ScheduledOrder.objects.filter(
        created_at__gte=since
    ).exclude(
        status=OrderStatus.CANCELLED
    ).select_related('vendor')

    results = ReconciliationChecker().reconcile_many(orders.iterator())
    mismatched = sum(1 for result in results if not result.valid)

    logger.info(f"Сверка заказов за {hours} ч: проверено {len(results)}, расхождений {mismatched}")
    return {
        'checked': len(results),
        'mismatched': mismatched,
    }


# =============================================================================
# ОЧИСТКА
# =============================================================================

@shared_task
def purge_expired_checkout_sessions():
    """
    Удалить просроченные checkout-сессии из БД.

    Токены в памяти процесса чистит sweeper модуля security.
    """
    from .checkout import DatabaseCredentialStore

    deleted = DatabaseCredentialStore().purge_expired(timezone.now())

    logger.info(f"Удалено {deleted} просроченных checkout-сессий")
    return deleted
