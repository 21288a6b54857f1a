from django.apps import AppConfig, apps


class OrdersConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'orders'
    verbose_name = 'Заказы'

    def ready(self):
        from .checkout import InMemoryCredentialStore, build_checkout_issuer

        self.checkout_issuer = build_checkout_issuer()

        # Токены в памяти процесса чистит sweeper security, в БД - Celery Beat
        if isinstance(self.checkout_issuer.store, InMemoryCredentialStore):
            apps.get_app_config('security').sweeper.register(self.checkout_issuer.purge_expired)
