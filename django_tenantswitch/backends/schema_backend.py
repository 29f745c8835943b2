"""
Schema-per-Tenant Backend Module

PostgreSQL isolation where every tenant is a schema inside one database.
Switching tenants rewrites the connection's ``search_path``; the connection
itself, and therefore the pool, is reused.

PostgreSQL accepts unknown schemas in ``search_path`` without complaint, so
the schema's existence is checked before every switch. Without that check a
typo would silently route queries to ``public``.

Configuration:
    ```python
    TENANTSWITCH_CONFIG = {
        "TENANT_BACKEND": "django_tenantswitch.backends.SchemaTenantBackend",
        "DEFAULT_TENANT": "public",
        "DATABASE_SCHEMA_FILE": BASE_DIR / "db" / "tenant_schema.sql",
    }
    ```
"""

from django.db import Error as DatabaseDriverError

from django_tenantswitch.exceptions import SwitchFailure, TenantNotFound

from .base import BaseTenantBackend


def quote_pgsql_name(name: str) -> str:
    return '"{}"'.format(name.replace('"', '""'))


class SchemaTenantBackend(BaseTenantBackend):
    tenant_config_key = "SCHEMA"
    tenant_storage_keys = ("SCHEMA",)
    max_identifier_bytes = 63
    forbidden_identifier_chars = '.\\/"'

    def fallback_default_tenant(self):
        return "public"

    def validate_tenant(self, tenant) -> bool:
        if not super().validate_tenant(tenant):
            return False
        # pg_ is reserved for system schemas
        return not self.tenant_name(tenant).startswith("pg_")

    def use_tenant_storage(self, config):
        schema = config[self.tenant_config_key]
        try:
            exists = self.database_exists(schema)
            if exists:
                self.driver.execute(self.owner_name, f"SET search_path TO {quote_pgsql_name(schema)}")
        except DatabaseDriverError as e:
            raise SwitchFailure(f"Failed to switch {self.owner_name} to schema {schema}: {e}") from e

        if not exists:
            raise TenantNotFound(f"Error while connecting to tenant {schema}: schema does not exist")

    def create_tenant(self, config):
        self.driver.execute(self.owner_name, f"CREATE SCHEMA {quote_pgsql_name(config[self.tenant_config_key])}")

    def drop_tenant(self, config):
        self.driver.execute(self.owner_name, f"DROP SCHEMA {quote_pgsql_name(config[self.tenant_config_key])} CASCADE")

    def database_exists(self, name) -> bool:
        result = self.driver.fetch_value(
            self.owner_name,
            "SELECT 1 FROM information_schema.schemata WHERE schema_name = %s",
            [name],
        )
        return result == 1
