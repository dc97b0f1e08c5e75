from django.apps import AppConfig


class CspNetworkConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "csp_network"
    verbose_name = "CSP Network"

    def ready(self):
        from . import signals  # noqa: F401
