from django.apps import AppConfig


class CatalogConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'storefront.catalog'
    label = 'catalog'

    def ready(self):
        import storefront.catalog.signals  # noqa
