from django.apps import AppConfig


class BookingsConfig(AppConfig):
    name = 'apps.bookings'
    default_auto_field = 'django.db.models.BigAutoField'

    def ready(self):
        # Registers event subscribers on the global message bus
        from apps.bookings import handlers  # noqa: F401
