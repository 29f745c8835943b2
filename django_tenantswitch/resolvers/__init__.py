from .base import BaseTenantResolver
from .settings_resolver import DatabaseSettingsResolver, MappingTenantResolver

__all__ = ["BaseTenantResolver", "DatabaseSettingsResolver", "MappingTenantResolver"]
