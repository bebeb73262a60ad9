from django.apps import AppConfig


class ProductionFlowConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'production_flow'
    verbose_name = 'Production Flow'
