class BaseTenantResolver:
    """
    Maps a tenant identifier to its connection config.

    Implementations return a mapping of Django-style connection keys
    (``NAME``, ``HOST``, ``SCHEMA``...) and raise
    ``django_tenantswitch.exceptions.TenantNotFound`` for unknown tenants.
    """

    def resolve(self, tenant):
        raise NotImplementedError
