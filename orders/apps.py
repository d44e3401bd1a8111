"""Django app configuration for the Orders app."""

from django.apps import AppConfig


class OrdersConfig(AppConfig):
    """AppConfig for orders materialized from checkout drafts."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "orders"
