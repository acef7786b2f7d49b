from django.apps import AppConfig
from django.core.signals import setting_changed
import logging

logger = logging.getLogger(__name__)


def reload_engine_settings(setting, **kwargs):
    if setting == "POS_ENGINE":
        from core_backend.config import engine_settings

        engine_settings.reload()


class CoreBackendConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core_backend"

    def ready(self):
        # Keep the cached engine settings in step with override_settings() in tests.
        setting_changed.connect(reload_engine_settings, dispatch_uid="core_backend.reload_engine_settings")
