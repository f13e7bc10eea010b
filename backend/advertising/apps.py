from django.apps import AppConfig


class AdvertisingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backend.advertising'
