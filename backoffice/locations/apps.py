from django.apps import AppConfig


class LocationsConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'backoffice.locations'
    label = 'locations'

    def ready(self):
        """Import signals when app is ready"""
        import backoffice.locations.cache  # noqa: F401
