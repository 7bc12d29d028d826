from django.apps import AppConfig


class InventarioConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "inventario"
    verbose_name = "Inventario de materiales"

    def ready(self):
        # Conecta los receptores de señales (avisos de stock bajo).
        from . import signals  # noqa: F401
