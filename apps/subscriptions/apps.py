"""
Django app configuration for Subscriptions app
"""

from django.apps import AppConfig


class SubscriptionsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.subscriptions"
    verbose_name = "Subscriptions"

    def ready(self) -> None:
        """Connect lifecycle signal receivers."""
        from . import signals  # noqa: F401
