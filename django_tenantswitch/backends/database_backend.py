"""
Database-per-Tenant Backend Module

This module implements the Database-per-Tenant isolation strategy on MySQL:
each tenant gets its own database, and tenants on the same server share one
connection pool, moving between databases with a ``USE`` statement.

Isolation Strategy:
    Each tenant is isolated in a separate database. Tenants may live on
    different servers; moving to a tenant on another host opens (or reuses)
    a pool for that host.

Architecture:
    - The resolver maps a tenant name to a config (NAME, HOST, PORT, ...)
    - Pools are Django aliases keyed by host and engine, shared by tenants
    - Same host: ``USE `tenant_db``` on the bound connection
    - Other host: bind to that host's pool, then ``USE``

Database Configuration:
    With the default resolver every tenant lives next to the master
    database and only NAME changes. For tenants spread across servers,
    use a MappingTenantResolver:

    ```python
    TENANTSWITCH_CONFIG = {
        "TENANT_BACKEND": "django_tenantswitch.backends.DatabaseTenantBackend",
        "TENANT_RESOLVER": "myproject.tenancy.resolver",
    }

    # myproject/tenancy.py
    def resolver():
        return MappingTenantResolver(
            {
                "acme": {"NAME": "tenant_acme", "HOST": "db-1.internal"},
                "globex": {"NAME": "tenant_globex", "HOST": "db-2.internal"},
            },
            defaults=settings.DATABASES["default"],
        )
    ```

Lifecycle:
    1. create() - CREATE DATABASE, USE it, load schema and seeds
    2. switch() / use_tenant() - USE the tenant database
    3. drop() - check INFORMATION_SCHEMA, DROP DATABASE

Error Mapping:
    - MySQL error 1049 (unknown database) on USE: TenantNotFound
    - any other driver error on USE: SwitchFailure, which makes the engine
      rebuild the pool and retry once

Security Considerations:
    Tenant names end up inside ``USE`` and ``CREATE DATABASE`` statements.
    Names longer than 64 bytes or containing ``.``, ``/`` or ``\\`` are
    rejected before any statement runs, and backticks are escaped.

Usage Example:
    ```python
    from django_tenantswitch.backends import DatabaseTenantBackend

    backend = DatabaseTenantBackend()

    backend.create("tenant_acme")

    with backend.use_tenant("tenant_acme"):
        User.objects.create(username="john")

    backend.drop("tenant_acme")
    ```

Related:
    - base.py: Switching engine and hook contract
    - schema_backend.py: Schema-per-tenant alternative
    - tenant_context.py: Per-worker backend lookup
"""

import logging

from django.db import Error as DatabaseDriverError

from django_tenantswitch.exceptions import SwitchFailure, TenantNotFound

from .base import BaseTenantBackend

logger = logging.getLogger(__name__)

# ER_BAD_DB_ERROR
UNKNOWN_DATABASE_ERROR = 1049


def quote_mysql_name(name: str) -> str:
    return "`{}`".format(name.replace("`", "``"))


class DatabaseTenantBackend(BaseTenantBackend):
    """
    MySQL database-per-tenant backend.

    Tenant names map to the ``NAME`` config key. Switching between tenants on
    the same server costs a single ``USE`` statement.
    """

    tenant_config_key = "NAME"
    tenant_storage_keys = ("NAME", "SCHEMA")
    max_identifier_bytes = 64
    forbidden_identifier_chars = ".\\/"

    def use_tenant_storage(self, config):
        database = config[self.tenant_config_key]
        try:
            self.driver.execute(self.owner_name, f"USE {quote_mysql_name(database)}")
        except DatabaseDriverError as e:
            if self._is_unknown_database(e):
                raise TenantNotFound(f"Error while connecting to tenant {database}: {e}") from e
            # Broken connection, let the engine rebuild the pool
            raise SwitchFailure(f"Failed to switch {self.owner_name} to {database}: {e}") from e

    def create_tenant(self, config):
        self.driver.create_database(self.owner_name, config[self.tenant_config_key])

    def database_exists(self, name) -> bool:
        result = self.driver.fetch_value(
            self.owner_name,
            "SELECT 1 AS `exists` FROM INFORMATION_SCHEMA.SCHEMATA WHERE SCHEMA_NAME = %s",
            [name],
        )
        return result == 1

    @staticmethod
    def _is_unknown_database(error) -> bool:
        args = getattr(error, "args", ())
        if args and args[0] == UNKNOWN_DATABASE_ERROR:
            return True
        return "Unknown database" in str(error)
