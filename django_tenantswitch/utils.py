"""
Utility helpers shared by drivers, backends and the router.

Connection Management:
    - close_db_connection(): close and forget an alias' connection in this thread
    - reset_db_connection(): same, then hand back a fresh wrapper

Tenant Context:
    - get_tenant_backend(): the switching backend bound to the running worker
    - get_current_tenant(): the tenant that backend is switched into
"""

from typing import Optional

from django.db import connections


# Database Connection Management
# ==============================


def close_db_connection(alias: str) -> None:
    """
    Close the current thread's connection for ``alias`` and drop the wrapper.

    Nothing happens if the alias has never been connected. Errors while
    closing are ignored: the connection may already be dead, which is usually
    why it is being closed.
    """
    if alias not in connections:
        return

    try:
        connections[alias].close()
    except Exception:
        pass

    try:
        # Removes only this thread's wrapper; the next access rebuilds it
        del connections[alias]
    except AttributeError:
        pass


def reset_db_connection(alias: str):
    close_db_connection(alias)

    # Access the connection to force re-initialization with new settings
    return connections[alias]


# Tenant Backend and Context Functions
# ====================================


def get_tenant_backend():
    # Import here to avoid circular imports
    from django_tenantswitch.tenant_context import TenantContext

    return TenantContext.get_backend()


def get_current_tenant() -> Optional[str]:
    from django_tenantswitch.tenant_context import TenantContext

    return TenantContext.get_tenant()
