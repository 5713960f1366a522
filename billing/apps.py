from django.apps import AppConfig


class BillingConfig(AppConfig):
    name = "billing"
    verbose_name = "Billing"
    gateway = None

    def ready(self):
        from .services.gateway import build_gateway
        self.gateway = build_gateway()
