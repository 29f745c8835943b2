"""
Connection pool registry shared by every switching backend.

Tenants that resolve to the same owner name (same host and engine, by
default) share one pool; switching between them only needs a lightweight
"use" statement. The registry is the one structure all workers share, so
every read and write goes through a lock, and establishing a pool is
idempotent: the first caller creates it, concurrent callers reuse it.
"""

import threading


class ConnectionRegistry:
    def __init__(self, driver):
        self.driver = driver
        self._pools = {}
        self._lock = threading.RLock()

    def __contains__(self, owner_name):
        with self._lock:
            return owner_name in self._pools

    def __len__(self):
        with self._lock:
            return len(self._pools)

    def owner_names(self) -> list[str]:
        with self._lock:
            return list(self._pools)

    def get(self, owner_name):
        with self._lock:
            return self._pools.get(owner_name)

    def checkout(self, owner_name, config):
        """Return the pool for ``owner_name``, establishing it from ``config`` on first use."""
        with self._lock:
            pool = self._pools.get(owner_name)
            if pool is None:
                pool = self.driver.retrieve_connection(owner_name)
            if pool is None:
                pool = self.driver.establish_connection(config, owner_name)
            self._pools[owner_name] = pool
            return pool

    def reconnect(self, owner_name, config):
        """Rebuild the pool for ``owner_name`` from ``config`` in one step."""
        with self._lock:
            pool = self.driver.reconnect_connection(config, owner_name)
            self._pools[owner_name] = pool
            return pool

    def remove(self, owner_name) -> None:
        with self._lock:
            self._pools.pop(owner_name, None)
            self.driver.remove_connection(owner_name)


_default_registry = None
_default_registry_lock = threading.Lock()


def get_default_registry() -> ConnectionRegistry:
    """Process-wide registry over a ``DjangoConnectionDriver``, created on first use."""
    global _default_registry

    with _default_registry_lock:
        if _default_registry is None:
            from django_tenantswitch.drivers import DjangoConnectionDriver

            _default_registry = ConnectionRegistry(DjangoConnectionDriver())
        return _default_registry
