from django.apps import AppConfig


class SalesCoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "sales_core"
    verbose_name = "Commercial documents"

    # ensure receivers are registered
    def ready(self):
        import sales_core.signals  # noqa: F401
