from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='AccessPin',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('identity', models.CharField(help_text='Телефон, email или логин в нижнем регистре', max_length=255, unique=True, verbose_name='Идентификатор')),
                ('pin_hash', models.CharField(max_length=128, verbose_name='Хэш PIN')),
                ('is_active', models.BooleanField(default=True, verbose_name='Активен')),
                ('updated_at', models.DateTimeField(auto_now=True, verbose_name='Дата обновления')),
            ],
            options={
                'verbose_name': 'PIN доступа',
                'verbose_name_plural': 'PIN доступа',
                'db_table': 'access_pins',
            },
        ),
    ]
