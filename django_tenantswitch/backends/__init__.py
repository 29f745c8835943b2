from .base import BaseTenantBackend, SwitchStrategy
from .database_backend import DatabaseTenantBackend
from .schema_backend import SchemaTenantBackend

__all__ = ["BaseTenantBackend", "DatabaseTenantBackend", "SchemaTenantBackend", "SwitchStrategy"]
