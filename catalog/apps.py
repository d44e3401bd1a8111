"""Django app configuration for the catalog."""

from django.apps import AppConfig


class CatalogConfig(AppConfig):
    """Products, configurable attributes and variant pricing."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "catalog"
    verbose_name = "Catalog"
