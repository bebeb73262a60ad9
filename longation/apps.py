from django.apps import AppConfig


class LongationConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'longation'
    verbose_name = 'Longation Stock'
