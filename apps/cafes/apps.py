from django.apps import AppConfig


class CafesConfig(AppConfig):
    name = 'apps.cafes'
