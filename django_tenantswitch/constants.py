"""
Configuration key names for django-tenantswitch.

All keys live inside the ``TENANTSWITCH_CONFIG`` dictionary of the Django
settings module:

```python
TENANTSWITCH_CONFIG = {
    "DEFAULT_TENANT": "app_main",
    "TENANT_BACKEND": "django_tenantswitch.backends.DatabaseTenantBackend",
    "SEED_AFTER_CREATE": True,
    "SEED_DATA_FILE": BASE_DIR / "db" / "seeds.sql",
}
```
"""


class _Constants:
    TENANTSWITCH_CONFIG = "TENANTSWITCH_CONFIG"

    DEFAULT_TENANT = "DEFAULT_TENANT"
    MASTER_DB_ALIAS = "MASTER_DB_ALIAS"
    FORCE_RECONNECT_ON_SWITCH = "FORCE_RECONNECT_ON_SWITCH"
    POOL_PER_CONFIG = "POOL_PER_CONFIG"
    SEED_AFTER_CREATE = "SEED_AFTER_CREATE"
    MIGRATE_AFTER_CREATE = "MIGRATE_AFTER_CREATE"
    DATABASE_SCHEMA_FILE = "DATABASE_SCHEMA_FILE"
    SEED_DATA_FILE = "SEED_DATA_FILE"
    TENANT_BACKEND = "TENANT_BACKEND"
    TENANT_RESOLVER = "TENANT_RESOLVER"
    TENANT_DECORATOR = "TENANT_DECORATOR"
    EXCLUDED_MODELS = "EXCLUDED_MODELS"

    # Prefix of every connection alias registered by the package
    OWNER_NAME_PREFIX = "_tenantswitch"
    EXCLUDED_OWNER_NAME = "_tenantswitch_excluded"


constants = _Constants()
