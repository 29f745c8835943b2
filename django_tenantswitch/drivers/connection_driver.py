"""
Django connection driver.

Implements the driver capability interface on top of Django's own connection
machinery:

    - A "pool" is a database alias registered in ``settings.DATABASES``. Django
      keeps one connection per alias and thread, so registering an alias is
      all it takes to make a new physical target reachable.
    - Statements run through ``connections[alias].cursor()``; driver errors
      surface as ``django.db.Error`` subclasses with the client's error args.
    - The query cache is the per-connection ``queries_log``.

Alias Configuration:
    Aliases registered after Django has configured its connection handler do
    not get Django's defaults applied, so every key a ``DatabaseWrapper``
    reads is resolved here, tenant values first, master alias values second:

    ```python
    {
        "ENGINE": "django.db.backends.mysql",
        "NAME": "tenant_acme",
        "HOST": "db-2.internal",
        "USER": "app", "PASSWORD": "...", "PORT": 3306,
        "OPTIONS": {}, "TIME_ZONE": None,
        "ATOMIC_REQUESTS": False, "AUTOCOMMIT": True,
        "CONN_MAX_AGE": 0, "CONN_HEALTH_CHECKS": False,
        "TEST": {...},
    }
    ```

    ``NAME`` is never inherited: a pool established for a host only (the
    tenant database stripped) must not silently land in the master database.
"""

import logging

from django.db import connections

from django_tenantswitch.conf import settings
from django_tenantswitch.utils import close_db_connection

from .base import BaseDatabaseDriver

logger = logging.getLogger(__name__)


class DjangoConnectionDriver(BaseDatabaseDriver):
    """Driver backed by ``django.db.connections`` and ``settings.DATABASES``."""

    # Connection Pools
    # ================

    def establish_connection(self, config, owner_name):
        db_config = self.build_connection_settings(config)

        # Drop any stale wrapper left behind for this alias in this thread
        close_db_connection(owner_name)
        settings.DATABASES[owner_name] = db_config

        logger.info("Registered connection alias %s for host %s.", owner_name, db_config["HOST"] or "localhost")
        return db_config

    def retrieve_connection(self, owner_name):
        return settings.DATABASES.get(owner_name)

    def remove_connection(self, owner_name):
        close_db_connection(owner_name)
        settings.DATABASES.pop(owner_name, None)

    def reconnect_connection(self, config, owner_name):
        # The alias is overwritten, never popped, so other threads keep resolving it
        return self.establish_connection(config, owner_name)

    # Statements
    # ==========

    def execute(self, owner_name, sql, params=None):
        with connections[owner_name].cursor() as cursor:
            cursor.execute(sql, params)

    def fetch_value(self, owner_name, sql, params=None):
        with connections[owner_name].cursor() as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return row[0] if row else None

    def execute_script(self, owner_name, script):
        connection = connections[owner_name]
        # Same splitting Django applies to initial SQL: sqlparse, comments stripped
        for statement in connection.ops.prepare_sql_script(script):
            self.execute(owner_name, statement)

    def clear_query_cache(self, owner_name):
        connections[owner_name].queries_log.clear()

    # Databases
    # =========

    def create_database(self, owner_name, name):
        connection = connections[owner_name]
        self.execute(owner_name, f"CREATE DATABASE {connection.ops.quote_name(name)}")
        logger.info("Database '%s' created.", name)

    def drop_database(self, owner_name, name):
        connection = connections[owner_name]
        self.execute(owner_name, f"DROP DATABASE {connection.ops.quote_name(name)}")
        logger.info("Database '%s' dropped.", name)

    # Helpers
    # =======

    @staticmethod
    def build_connection_settings(config) -> dict:
        """Merge a tenant config over the master alias settings into a full Django alias."""
        base_config: dict = settings.DATABASES.get(settings.MASTER_DB_ALIAS, {})

        def pick(key, default=None):
            # Explicit tenant values win, even falsy ones
            if key in config:
                return config[key]
            return base_config.get(key, default)

        resolved_config = {
            "ENGINE": pick("ENGINE", "django.db.backends.mysql"),
            "NAME": config.get("NAME") or "",
            "USER": pick("USER", ""),
            "PASSWORD": pick("PASSWORD", ""),
            "HOST": pick("HOST", ""),
            "PORT": pick("PORT", ""),
            "OPTIONS": dict(pick("OPTIONS") or {}),
            "TIME_ZONE": pick("TIME_ZONE"),
            "ATOMIC_REQUESTS": pick("ATOMIC_REQUESTS", False),
            "AUTOCOMMIT": pick("AUTOCOMMIT", True),
            "CONN_MAX_AGE": pick("CONN_MAX_AGE", 0),
            "CONN_HEALTH_CHECKS": pick("CONN_HEALTH_CHECKS", False),
            "TEST": dict(pick("TEST") or {}),
        }

        # Django only fills TEST defaults for aliases it saw at startup
        for key in ("CHARSET", "COLLATION", "MIRROR", "NAME"):
            resolved_config["TEST"].setdefault(key, None)
        resolved_config["TEST"].setdefault("MIGRATE", True)

        return resolved_config
