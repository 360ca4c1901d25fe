from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for Core application

    This app contains:
        - JSON request/response helpers used by every API view
        - JsonExceptionMiddleware (JSON 400/403/404 under /api/)
        - Dashboard endpoints
    """
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.core'
    verbose_name = 'Core'
