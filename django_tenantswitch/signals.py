"""
Lifecycle notifications.

Receivers are called in registration order and get ``sender`` (the backend
class), ``backend`` (the instance) and ``tenant``. The ``post_*`` signals are
only sent when the operation succeeded.

Example:
    ```python
    from django.dispatch import receiver
    from django_tenantswitch.signals import post_tenant_create

    @receiver(post_tenant_create)
    def audit_tenant(sender, backend, tenant, **kwargs):
        AuditLog.objects.create(action="tenant_created", target=str(tenant))
    ```
"""

from django.dispatch import Signal

pre_tenant_switch = Signal()
post_tenant_switch = Signal()

pre_tenant_create = Signal()
post_tenant_create = Signal()

tenant_dropped = Signal()
