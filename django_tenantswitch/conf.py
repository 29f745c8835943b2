"""
Settings access for django-tenantswitch.

Wraps ``django.conf.settings`` and exposes the keys of ``TENANTSWITCH_CONFIG``
as cached properties with sensible defaults. Any attribute that is not a
tenantswitch option falls through to the Django settings object, so
``settings.DATABASES`` keeps working from this module.

Usage:
    ```python
    from django_tenantswitch.conf import settings

    if settings.FORCE_RECONNECT_ON_SWITCH:
        ...
    ```

Cached values are dropped whenever Django's ``setting_changed`` signal fires
for ``TENANTSWITCH_CONFIG`` or ``DATABASES`` (e.g. under ``override_settings``).
"""

from __future__ import annotations

from django.conf import settings as django_settings
from django.core.exceptions import ImproperlyConfigured
from django.core.signals import setting_changed
from django.utils.functional import cached_property
from django.utils.module_loading import import_string

from .constants import constants


class _WrappedSettings:
    """
    Lazy proxy over Django settings with tenantswitch defaults.

    Attribute assignment is forwarded to Django settings, except for names
    already cached on the wrapper itself.
    """

    def __getattr__(self, item):
        return getattr(django_settings, item)

    def __setattr__(self, key, value):
        if key in self.__dict__:
            raise ValueError("Item assignment is not supported")

        setattr(django_settings, key, value)

    def reload(self) -> None:
        """Forget every cached option so the next access re-reads Django settings."""
        self.__dict__.clear()

    # Configuration Properties
    # =======================

    @cached_property
    def TENANTSWITCH_CONFIG(self) -> dict:
        config = getattr(django_settings, constants.TENANTSWITCH_CONFIG, {})
        if not isinstance(config, dict):
            raise ImproperlyConfigured(f"{constants.TENANTSWITCH_CONFIG} must be a dict.")
        return config

    @cached_property
    def MASTER_DB_ALIAS(self) -> str:
        return self.TENANTSWITCH_CONFIG.get(constants.MASTER_DB_ALIAS, "default")

    @cached_property
    def DEFAULT_TENANT(self):
        # None lets each backend pick its own fallback (master database, public schema)
        return self.TENANTSWITCH_CONFIG.get(constants.DEFAULT_TENANT) or None

    @cached_property
    def FORCE_RECONNECT_ON_SWITCH(self) -> bool:
        return bool(self.TENANTSWITCH_CONFIG.get(constants.FORCE_RECONNECT_ON_SWITCH, False))

    @cached_property
    def POOL_PER_CONFIG(self) -> bool:
        return bool(self.TENANTSWITCH_CONFIG.get(constants.POOL_PER_CONFIG, False))

    @cached_property
    def SEED_AFTER_CREATE(self) -> bool:
        return bool(self.TENANTSWITCH_CONFIG.get(constants.SEED_AFTER_CREATE, False))

    @cached_property
    def MIGRATE_AFTER_CREATE(self) -> bool:
        return bool(self.TENANTSWITCH_CONFIG.get(constants.MIGRATE_AFTER_CREATE, False))

    @cached_property
    def DATABASE_SCHEMA_FILE(self) -> str | None:
        path = self.TENANTSWITCH_CONFIG.get(constants.DATABASE_SCHEMA_FILE)
        return str(path) if path else None

    @cached_property
    def SEED_DATA_FILE(self) -> str | None:
        path = self.TENANTSWITCH_CONFIG.get(constants.SEED_DATA_FILE)
        return str(path) if path else None

    @cached_property
    def TENANT_BACKEND(self) -> str:
        return self.TENANTSWITCH_CONFIG.get(
            constants.TENANT_BACKEND,
            "django_tenantswitch.backends.DatabaseTenantBackend",
        )

    @cached_property
    def TENANT_RESOLVER(self) -> str | None:
        # None means the backend's own default resolver
        return self.TENANTSWITCH_CONFIG.get(constants.TENANT_RESOLVER)

    @cached_property
    def TENANT_DECORATOR(self):
        decorator = self.TENANTSWITCH_CONFIG.get(constants.TENANT_DECORATOR)
        if decorator is None or callable(decorator):
            return decorator
        try:
            return import_string(decorator)
        except ImportError as exc:
            raise ImproperlyConfigured(
                f"Could not import tenant decorator '{decorator}': {exc}"
            ) from exc

    @cached_property
    def EXCLUDED_MODELS(self) -> list[str]:
        models = self.TENANTSWITCH_CONFIG.get(constants.EXCLUDED_MODELS, [])
        if not isinstance(models, (list, tuple)):
            raise ImproperlyConfigured(
                f"{constants.TENANTSWITCH_CONFIG}['{constants.EXCLUDED_MODELS}'] must be a list of "
                "'app_label.ModelName' strings."
            )
        return list(models)


# Module-Level Singleton Instance
# ================================

settings = _WrappedSettings()


def _reload_settings(*args, setting=None, **kwargs):
    if setting in (constants.TENANTSWITCH_CONFIG, "DATABASES"):
        settings.reload()


setting_changed.connect(_reload_settings)
