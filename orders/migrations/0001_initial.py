from decimal import Decimal
import uuid

from django.conf import settings
import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


def money_field(verbose_name):
    return models.DecimalField(
        decimal_places=2,
        default=Decimal('0.00'),
        max_digits=10,
        validators=[django.core.validators.MinValueValidator(Decimal('0'))],
        verbose_name=verbose_name,
    )


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ScheduledOrder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('vendor_name', models.CharField(blank=True, help_text='Денормализовано для отображения', max_length=255, verbose_name='Название заведения')),
                ('items', models.JSONField(default=list, verbose_name='Позиции')),
                ('subtotal', money_field('Подытог')),
                ('sales_tax', money_field('Налог с продаж')),
                ('service_fee', money_field('Сервисный сбор')),
                ('delivery_fee', money_field('Доставка')),
                ('gratuity', money_field('Чаевые')),
                ('total', money_field('Итого')),
                ('gratuity_percent', models.DecimalField(blank=True, decimal_places=2, help_text='Выбранный клиентом процент (NULL у старых заказов)', max_digits=6, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0'))], verbose_name='Процент чаевых')),
                ('delivery_distance_miles', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name='Расстояние доставки (мили)')),
                ('status', models.CharField(choices=[('scheduled', 'Запланирован'), ('confirmed', 'Подтверждён'), ('preparing', 'Готовится'), ('out_for_delivery', 'В пути'), ('delivered', 'Доставлен'), ('cancelled', 'Отменён')], default='scheduled', max_length=30, verbose_name='Статус')),
                ('checkout_token_hash', models.CharField(blank=True, db_index=True, max_length=64, verbose_name='Хэш checkout-токена')),
                ('created_at', models.DateTimeField(auto_now_add=True, verbose_name='Дата создания')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Дата обновления')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='scheduled_orders', to=settings.AUTH_USER_MODEL, verbose_name='Кто оформил')),
                ('vendor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='catalog.vendor', verbose_name='Заведение')),
            ],
            options={
                'verbose_name': 'Заказ',
                'verbose_name_plural': 'Заказы',
                'db_table': 'scheduled_orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['vendor', '-created_at'], name='sched_orders_vendor_idx'),
                    models.Index(fields=['status', '-created_at'], name='sched_orders_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='CheckoutSession',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('token_hash', models.CharField(max_length=64, unique=True, verbose_name='Хэш токена')),
                ('pricing', models.JSONField(verbose_name='Расчёт цены')),
                ('total', money_field('Итого')),
                ('gratuity_percent', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=6, verbose_name='Процент чаевых')),
                ('delivery_distance_miles', models.DecimalField(blank=True, decimal_places=2, max_digits=6, null=True, verbose_name='Расстояние доставки (мили)')),
                ('issued_at', models.DateTimeField(default=django.utils.timezone.now, verbose_name='Выдан')),
                ('expires_at', models.DateTimeField(db_index=True, verbose_name='Истекает')),
                ('consumed_at', models.DateTimeField(blank=True, null=True, verbose_name='Использован')),
                ('vendor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='checkout_sessions', to='catalog.vendor', verbose_name='Заведение')),
            ],
            options={
                'verbose_name': 'Checkout-сессия',
                'verbose_name_plural': 'Checkout-сессии',
                'db_table': 'checkout_sessions',
                'ordering': ['-issued_at'],
            },
        ),
    ]
