"""Exceptions raised by the tenant switching engine."""


class TenantSwitchError(Exception):
    """Base class for every error raised by django-tenantswitch."""


class TenantNotFound(TenantSwitchError):
    """The tenant cannot be resolved, or its database/schema does not exist."""


class InvalidTenantIdentifier(TenantSwitchError, ValueError):
    """The tenant name is unsafe to embed in a physical identifier."""


class SwitchFailure(TenantSwitchError):
    """
    A driver call failed while switching for a reason other than absence.

    Raised by ``use_tenant_storage`` hooks to ask the engine for a
    reconnect-and-retry, and by the engine when the retry failed too.
    """


class ProvisioningFailure(TenantSwitchError):
    """Creating, loading or seeding a tenant failed; the cause is chained."""
