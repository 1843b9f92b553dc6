from django.apps import AppConfig


class ListingsAppConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "listings_app"
    verbose_name = "Rently listings"

    def ready(self):
        # import signals so receivers are registered
        from . import signals  # noqa: F401
