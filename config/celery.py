# config/celery.py
"""
Конфигурация Celery для проекта Storefront Checkout.

Celery используется для:
- Периодической сверки сохранённых заказов (reconciliation)
- Очистки просроченных checkout-сессий в БД
"""

import os
from celery import Celery

# Устанавливаем модуль настроек Django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

# Создаём экземпляр Celery
app = Celery('config')

# Загружаем конфигурацию из настроек Django
# Все настройки Celery должны начинаться с CELERY_
app.config_from_object('django.conf:settings', namespace='CELERY')

# Автоматически находим задачи в приложениях Django
app.autodiscover_tasks()
