"""
Resolvers turning tenant names into connection configs.

DatabaseSettingsResolver:
    Every tenant lives next to the master database: the master alias from
    ``settings.DATABASES`` is copied and the tenant name is written into one
    key (``NAME`` for database-per-tenant, ``SCHEMA`` for schema-per-tenant).

MappingTenantResolver:
    An explicit table of tenant -> config, for tenants spread across hosts.
    Entries are merged over optional shared defaults.

    ```python
    resolver = MappingTenantResolver(
        {
            "acme": {"NAME": "tenant_acme", "HOST": "db-1.internal"},
            "globex": {"NAME": "tenant_globex", "HOST": "db-2.internal"},
        },
        defaults={"ENGINE": "django.db.backends.mysql", "USER": "app"},
    )
    ```
"""

from django.core.exceptions import ImproperlyConfigured
from requests.structures import CaseInsensitiveDict

from django_tenantswitch.conf import settings
from django_tenantswitch.exceptions import TenantNotFound

from .base import BaseTenantResolver


class DatabaseSettingsResolver(BaseTenantResolver):
    # Keys that describe Django test behaviour, not connectivity
    IGNORED_KEYS = ("TEST",)

    def __init__(self, tenant_key: str = "NAME", alias: str | None = None):
        self.tenant_key = tenant_key
        self.alias = alias

    def resolve(self, tenant):
        if not tenant:
            raise TenantNotFound(f"Cannot resolve an empty tenant name: {tenant!r}")

        alias = self.alias or settings.MASTER_DB_ALIAS
        try:
            base_config = settings.DATABASES[alias]
        except KeyError:
            raise ImproperlyConfigured(f"DATABASES has no '{alias}' alias to resolve tenants from.")

        config = CaseInsensitiveDict(
            {key: value for key, value in base_config.items() if key not in self.IGNORED_KEYS}
        )
        config[self.tenant_key] = tenant
        return config


class MappingTenantResolver(BaseTenantResolver):
    def __init__(self, tenants, defaults=None):
        self.tenants = dict(tenants)
        self.defaults = dict(defaults or {})

    def resolve(self, tenant):
        try:
            entry = self.tenants[tenant]
        except (KeyError, TypeError):
            raise TenantNotFound(f"Unknown tenant: {tenant!r}")

        config = CaseInsensitiveDict(self.defaults)
        config.update(entry)
        return config
