from django.apps import AppConfig


class MpesaAppConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'mpesa'
    verbose_name = 'M-Pesa Payments'
