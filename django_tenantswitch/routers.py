from django_tenantswitch.conf import settings
from django_tenantswitch.constants import constants
from django_tenantswitch.tenant_context import TenantContext


class TenantRouter:
    """
    Sends ORM queries to the alias the running worker is switched into.

    Models listed in EXCLUDED_MODELS go to the excluded alias (the default
    tenant) once ``process_excluded_models()`` has registered it. Workers that
    never switched get ``None``, which leaves the decision to Django.

    ```python
    DATABASE_ROUTERS = ["django_tenantswitch.routers.TenantRouter"]
    ```
    """

    def _is_excluded(self, model) -> bool:
        label = f"{model._meta.app_label}.{model._meta.object_name}"
        return label in settings.EXCLUDED_MODELS

    def db_for_read(self, model, **hints):
        if self._is_excluded(model) and constants.EXCLUDED_OWNER_NAME in settings.DATABASES:
            return constants.EXCLUDED_OWNER_NAME

        return TenantContext.get_db_alias()

    def db_for_write(self, model, **hints):
        return self.db_for_read(model, **hints)

    def allow_relation(self, obj1, obj2, **hints):
        # Only objects routed to the same alias may reference each other
        return self.db_for_read(obj1.__class__) == self.db_for_read(obj2.__class__)

    def allow_migrate(self, db, app_label, model_name=None, **hints):
        return None
