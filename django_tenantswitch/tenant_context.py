"""
Per-worker access to the tenant switching backend.

Each thread (and each task run inside ``TenantContext.isolated()``) gets its
own backend instance, created lazily from TENANT_BACKEND on first use. The
backends share the process-wide connection registry and nothing else, so
two workers switching tenants concurrently never see each other's current
tenant.

The backend is stored in a ``ContextVar``. New threads start with an empty
context and build their own backend. Tasks copy their parent's context, so
a task that must switch tenants on its own should enter ``isolated()`` first.

Pools are established without a tenant selected. When Django opens a new
connection for the alias a worker is bound to (a new request, CONN_MAX_AGE
expiry), the worker's "use" statement is issued again from a
``connection_created`` receiver.

Example:
    ```python
    from django_tenantswitch.tenant_context import TenantContext

    with TenantContext.use_tenant("tenant_acme"):
        Invoice.objects.filter(paid=False).count()

    async def job(tenant):
        with TenantContext.isolated():
            with TenantContext.use_tenant(tenant):
                ...
    ```
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar

from django.db.backends.signals import connection_created
from django.dispatch import receiver
from django.utils.module_loading import import_string

from .conf import settings
from .exceptions import TenantSwitchError

logger = logging.getLogger(__name__)

_backend: ContextVar = ContextVar("tenantswitch_backend", default=None)


def build_backend(**kwargs):
    """Instantiate the configured TENANT_BACKEND."""
    backend_class = import_string(settings.TENANT_BACKEND)
    return backend_class(**kwargs)


class TenantContext:
    @classmethod
    def get_backend(cls, create: bool = True):
        backend = _backend.get()
        if backend is None and create:
            backend = build_backend()
            _backend.set(backend)
        return backend

    @classmethod
    def set_backend(cls, backend):
        """Bind ``backend`` to the running context; returns a token for ``reset_backend``."""
        return _backend.set(backend)

    @classmethod
    def reset_backend(cls, token) -> None:
        _backend.reset(token)

    @classmethod
    def get_tenant(cls):
        backend = _backend.get()
        return backend.current if backend is not None else None

    @classmethod
    def get_db_alias(cls) -> str | None:
        """Alias the running worker is bound to, or ``None`` before any switch."""
        backend = _backend.get()
        return backend.owner_name if backend is not None else None

    @classmethod
    @contextmanager
    def use_tenant(cls, tenant):
        with cls.get_backend().use_tenant(tenant) as backend:
            yield backend

    @classmethod
    @contextmanager
    def isolated(cls, backend=None):
        """Give the enclosed block its own backend, fresh unless one is passed."""
        token = _backend.set(backend if backend is not None else build_backend())
        try:
            yield _backend.get()
        finally:
            _backend.reset(token)


@receiver(connection_created, dispatch_uid="tenantswitch_reapply_tenant_storage")
def reapply_tenant_storage(sender, connection, **kwargs):
    backend = _backend.get()
    if backend is None:
        return
    try:
        backend.reapply_tenant_storage(connection.alias)
    except TenantSwitchError as exc:
        # The connection stays open without a tenant selected
        logger.warning("Unable to select tenant %r on new connection %s: %s", backend.current, connection.alias, exc)
