"""
Tenant Switching Engine

This module holds the engine shared by every concrete tenant backend. A
backend instance tracks which tenant its worker is switched into, binds that
worker to a connection pool and moves it between tenants as cheaply as the
physical layout allows.

Switching Strategy:
    The requested tenant's config is compared field by field with the config
    of the current tenant:

    - ``HOST`` differs (or no pool is bound yet, or FORCE_RECONNECT_ON_SWITCH
      is set): full reconnect. The owner name for the new config is computed,
      its pool is established (without the tenant storage keys) or reused
      from the shared registry, the worker is bound to it, then the
      lightweight "use" statement runs.
    - anything else differs: lightweight switch. Only the "use" statement
      runs, on the pool the worker is already bound to.

    Owner names are derived from host and engine, so all tenants living on
    one server share one pool. With POOL_PER_CONFIG the whole config is
    hashed instead.

Failure Recovery:
    - Validation and resolution errors are raised before anything changes.
    - A "use" statement failing on a missing database raises TenantNotFound.
      Any other failure makes the engine rebuild the pool in place and
      retry once; a second failure raises SwitchFailure.
    - A switch failing after the physical connection was touched switches
      back to the previous tenant, or to the default tenant if that fails.
    - ``use_tenant()``, ``create()`` and ``drop()`` always restore the
      previous tenant on the way out with the same fallback. Restoration
      errors are logged and never replace the caller's exception.

Concurrency:
    One backend per worker (see ``TenantContext``); only the
    ``ConnectionRegistry`` is shared. ``current`` and ``owner_name`` are plain
    instance attributes and must not be shared between threads or tasks.

Hooks:
    Concrete backends implement ``use_tenant_storage``, ``create_tenant`` and
    ``database_exists``, and tune ``validate_tenant`` through class
    attributes. ``select_switch_strategy``, ``connection_owner_name`` and
    ``drop_tenant`` have defaults that fit most engines.

Related:
    - database_backend.py: MySQL database-per-tenant backend
    - schema_backend.py: PostgreSQL schema-per-tenant backend
    - registry.py: shared pool registry
    - tenant_context.py: per-worker backend lookup
"""

import hashlib
import json
import logging
from collections.abc import Mapping
from contextlib import contextmanager
from enum import Enum

from django.core.exceptions import ImproperlyConfigured
from django.core.management import call_command
from django.utils.module_loading import import_string
from requests.structures import CaseInsensitiveDict

from django_tenantswitch import signals
from django_tenantswitch.conf import settings
from django_tenantswitch.constants import constants
from django_tenantswitch.exceptions import (
    InvalidTenantIdentifier,
    ProvisioningFailure,
    SwitchFailure,
    TenantNotFound,
    TenantSwitchError,
)
from django_tenantswitch.loaders import load_or_abort
from django_tenantswitch.registry import ConnectionRegistry, get_default_registry
from django_tenantswitch.resolvers import DatabaseSettingsResolver

logger = logging.getLogger(__name__)


class SwitchStrategy(Enum):
    FULL_RECONNECT = "full_reconnect"
    LIGHTWEIGHT = "lightweight"


def _option(value, default):
    return default if value is None else value


class BaseTenantBackend:
    """
    Engine behind every tenant backend.

    Attributes:
        current: Tenant (name or config mapping) the worker is switched into,
            ``None`` until the first successful switch.
        owner_name: Name of the pool the worker is bound to.
        registry (ConnectionRegistry): Pools shared with other workers.
        resolver: Object with ``resolve(tenant) -> config``.

    Class Attributes:
        tenant_config_key: Config key that holds the tenant's storage name.
        tenant_storage_keys: Keys that select a tenant inside a host; pools are
            always established without them.
        max_identifier_bytes: Longest accepted tenant name, UTF-8 encoded.
        forbidden_identifier_chars: Characters never accepted in a tenant name.
    """

    tenant_config_key = "NAME"
    tenant_storage_keys = ("NAME", "SCHEMA")
    max_identifier_bytes = 64
    forbidden_identifier_chars = ".\\/"
    default_resolver_class = DatabaseSettingsResolver

    def __init__(
        self,
        *,
        registry: ConnectionRegistry | None = None,
        driver=None,
        resolver=None,
        default_tenant=None,
        force_reconnect_on_switch: bool | None = None,
        pool_per_config: bool | None = None,
        seed_after_create: bool | None = None,
        migrate_after_create: bool | None = None,
        database_schema_file: str | None = None,
        seed_data_file: str | None = None,
        tenant_decorator=None,
    ):
        """
        Build a backend and switch it into the default tenant.

        Every option falls back to the matching TENANTSWITCH_CONFIG setting.
        Pass ``driver`` to get a private registry around it, or ``registry``
        to share pools with other backends.

        If the default tenant is unreachable the backend is still returned,
        with ``current`` left as ``None`` and a warning logged.
        """
        if registry is None:
            registry = ConnectionRegistry(driver) if driver is not None else get_default_registry()
        self.registry = registry
        self.resolver = resolver or self._build_resolver()

        self.default_tenant = _option(default_tenant, settings.DEFAULT_TENANT) or self.fallback_default_tenant()
        self.force_reconnect_on_switch = _option(force_reconnect_on_switch, settings.FORCE_RECONNECT_ON_SWITCH)
        self.pool_per_config = _option(pool_per_config, settings.POOL_PER_CONFIG)
        self.seed_after_create = _option(seed_after_create, settings.SEED_AFTER_CREATE)
        self.migrate_after_create = _option(migrate_after_create, settings.MIGRATE_AFTER_CREATE)
        self.database_schema_file = _option(database_schema_file, settings.DATABASE_SCHEMA_FILE)
        self.seed_data_file = _option(seed_data_file, settings.SEED_DATA_FILE)
        self.tenant_decorator = _option(tenant_decorator, settings.TENANT_DECORATOR)

        self.current = None
        self.owner_name = None
        self._current_config = CaseInsensitiveDict()
        # Config of the last "use" statement that ran on the bound pool
        self._storage_config = None

        try:
            self.reset()
        except TenantSwitchError as exc:
            logger.warning("Unable to connect to default tenant %r: %s", self.default_tenant, exc)

    @property
    def driver(self):
        return self.registry.driver

    def _build_resolver(self):
        if settings.TENANT_RESOLVER:
            return import_string(settings.TENANT_RESOLVER)()
        return self.default_resolver_class(tenant_key=self.tenant_config_key)

    def fallback_default_tenant(self):
        """Default tenant when none is configured: the master alias' database."""
        master = settings.DATABASES.get(settings.MASTER_DB_ALIAS, {})
        if not master.get("NAME"):
            raise ImproperlyConfigured(
                f"{constants.TENANTSWITCH_CONFIG}['{constants.DEFAULT_TENANT}'] is not set and "
                f"DATABASES['{settings.MASTER_DB_ALIAS}'] has no NAME to fall back on."
            )
        return master["NAME"]

    # ========== Public Operations ==========

    def switch(self, tenant):
        """
        Switch this worker into ``tenant`` until told otherwise.

        Args:
            tenant: Tenant name, or a config mapping used as-is.

        Raises:
            InvalidTenantIdentifier: The name is unsafe; nothing was touched.
            TenantNotFound: Unknown tenant, or its database/schema is missing.
            SwitchFailure: The driver failed twice, reconnect included.

        Signals:
            pre_tenant_switch before anything happens, post_tenant_switch
            after the switch committed.
        """
        signals.pre_tenant_switch.send(sender=self.__class__, backend=self, tenant=tenant)

        config = self._validated_config(tenant)
        previous = self.current
        try:
            self._switch_to(tenant, config)
        except Exception:
            # Nothing valid to go back to when the worker was never switched
            if previous is not None:
                self._restore(previous)
            raise

        signals.post_tenant_switch.send(sender=self.__class__, backend=self, tenant=tenant)

    def reset(self):
        """Switch back into the default tenant."""
        self.switch(self.default_tenant)

    @contextmanager
    def use_tenant(self, tenant):
        """
        Run a block inside ``tenant`` and restore the previous tenant afterward.

        Restoration runs whether the block returns, raises or is cancelled,
        and never raises itself. Nested blocks restore in LIFO order.

        Example:
            ```python
            with backend.use_tenant("acme"):
                Invoice.objects.create(total=10)
            # back in the previous tenant here
            ```
        """
        previous = self.current
        self.switch(tenant)
        try:
            yield self
        finally:
            self._restore(previous)

    def create(self, tenant, init=None, run_migrations=None):
        """
        Provision storage for a new tenant.

        Process:
            1. Validate and resolve the tenant
            2. Connect to the tenant's host if it differs from the current one
            3. create_tenant() - physically create the database/schema
            4. Switch into it and load DATABASE_SCHEMA_FILE
            5. Load SEED_DATA_FILE if SEED_AFTER_CREATE
            6. Run Django migrations if requested
            7. Call ``init(backend)`` while still inside the new tenant
            8. Always switch back to the previous tenant (default on failure)

        Args:
            tenant: Tenant name or config mapping.
            init: Optional callable receiving the backend, run inside the tenant.
            run_migrations: Run ``migrate`` on the bound alias. Defaults to
                MIGRATE_AFTER_CREATE.

        Raises:
            InvalidTenantIdentifier / TenantNotFound: Before anything is touched.
            ProvisioningFailure: A provisioning step failed; the driver or
                loader error is chained as ``__cause__``.
            SystemExit: A configured schema or seed file is missing.
        """
        signals.pre_tenant_create.send(sender=self.__class__, backend=self, tenant=tenant)

        config = self._validated_config(tenant)
        previous = self.current
        try:
            difference = self.current_difference_from(config)
            if self._needs_reconnect(difference):
                self.connection_switch(config, without_keys=self.tenant_storage_keys)

            self.create_tenant(config)
            self.simple_switch(config)
            self._commit(tenant, config)

            self.import_database_schema()
            if self.seed_after_create:
                self.seed_data()
            if _option(run_migrations, self.migrate_after_create):
                self.migrate()

            if init is not None:
                init(self)
        except TenantSwitchError:
            raise
        except Exception as exc:
            raise ProvisioningFailure(f"Failed to create tenant {tenant!r}: {exc}") from exc
        finally:
            self._restore(previous)

        signals.post_tenant_create.send(sender=self.__class__, backend=self, tenant=tenant)

    def drop(self, tenant):
        """
        Destroy a tenant's database/schema.

        Dropping a tenant that does not exist is an error, not a no-op. The
        previous tenant is restored afterward, or the default tenant if the
        previous one was the tenant just dropped.

        Raises:
            TenantNotFound: The tenant's storage does not exist.
        """
        config = self._validated_config(tenant)
        previous = self.current
        try:
            difference = self.current_difference_from(config)
            if self._needs_reconnect(difference):
                self.connection_switch(config, without_keys=self.tenant_storage_keys)

            name = config.get(self.tenant_config_key)
            if not self.database_exists(name):
                raise TenantNotFound(f"Error while dropping {name} for tenant {tenant!r}: it does not exist")

            self.drop_tenant(config)
            self._commit(tenant, config)
        finally:
            self._restore(self.default_tenant if previous == tenant else previous)

        signals.tenant_dropped.send(sender=self.__class__, backend=self, tenant=tenant)

    def migrate(self, *args, **kwargs):
        """Run Django's ``migrate`` command against the bound alias."""
        kwargs.setdefault("interactive", False)
        kwargs.setdefault("verbosity", 0)
        try:
            call_command("migrate", *args, database=self.owner_name, **kwargs)
        except Exception as e:
            logger.error("Migration failed for tenant %r on %s: %s", self.current, self.owner_name, e)
            raise

    def process_excluded_models(self):
        """
        Register the alias that EXCLUDED_MODELS are routed to.

        Excluded models always live in the default tenant, whatever tenant a
        worker is switched into; ``TenantRouter`` sends them to this alias.
        """
        config = self.config_for(self.default_tenant)
        self.registry.checkout(constants.EXCLUDED_OWNER_NAME, config)

    # ========== Resolution ==========

    def config_for(self, tenant) -> CaseInsensitiveDict:
        if isinstance(tenant, Mapping):
            return CaseInsensitiveDict(tenant)

        return CaseInsensitiveDict(self.resolver.resolve(self.decorate(tenant)))

    def decorate(self, tenant):
        return self.tenant_decorator(tenant) if self.tenant_decorator else tenant

    def current_difference_from(self, config) -> CaseInsensitiveDict:
        """Fields of ``config`` whose value differs from the current tenant's config."""
        return CaseInsensitiveDict(
            {key: value for key, value in config.items() if self._current_config.get(key) != value}
        )

    def _validated_config(self, tenant):
        if not self.validate_tenant(tenant):
            raise InvalidTenantIdentifier(f"Invalid tenant identifier: {tenant!r}")
        return self.config_for(tenant)

    # ========== Switching Mechanics ==========

    def _needs_reconnect(self, difference) -> bool:
        return self.owner_name is None or self.select_switch_strategy(difference) is SwitchStrategy.FULL_RECONNECT

    def _switch_to(self, tenant, config):
        difference = self.current_difference_from(config)

        if self.force_reconnect_on_switch or self._needs_reconnect(difference):
            self.connection_switch(config)
        else:
            self.simple_switch(config)

        self.driver.clear_query_cache(self.owner_name)
        self._commit(tenant, config)

    def _commit(self, tenant, config):
        self.current = tenant
        self._current_config = config

    def connection_switch(self, config, without_keys=(), reconnect=False):
        """
        Bind the worker to the pool for ``config``, establishing it if needed.

        The pool is always established without ``tenant_storage_keys``: it
        belongs to a host, not to a tenant, and the "use" statement selects
        the tenant on top of it.

        Args:
            config: Resolved tenant config.
            without_keys: Keys dropped before anything else (connect to a
                host, not a tenant).
            reconnect: Rebuild the existing pool first and do not retry the
                "use" statement again if it fails on the fresh pool.
        """
        dropped = {key.upper() for key in without_keys}
        config = CaseInsensitiveDict({key: value for key, value in config.items() if key.upper() not in dropped})
        storage_keys = {key.upper() for key in self.tenant_storage_keys}
        pool_config = CaseInsensitiveDict(
            {key: value for key, value in config.items() if key.upper() not in storage_keys}
        )
        owner_name = self.connection_owner_name(config)

        if reconnect:
            self.registry.reconnect(owner_name, pool_config)
        else:
            self.registry.checkout(owner_name, pool_config)

        previous = self.owner_name, self._current_config, self._storage_config
        self.owner_name = owner_name
        # A connection opened on the new pool has no tenant selected yet
        self._storage_config = None
        try:
            if config.get(self.tenant_config_key):
                self.simple_switch(config, retry=not reconnect)
            else:
                # Bound to a host only; later diffs must see the host change
                self._current_config = config
        except Exception:
            self.owner_name, self._current_config, self._storage_config = previous
            raise

    def simple_switch(self, config, retry=True):
        """Issue the lightweight "use" statement, reconnecting once on a broken pool."""
        try:
            self.use_tenant_storage(config)
        except SwitchFailure as exc:
            if not retry:
                raise
            logger.warning("Reconnecting %s after a failed switch: %s", self.owner_name, exc)
            self.connection_switch(config, reconnect=True)
        else:
            self._storage_config = config

    def reapply_tenant_storage(self, alias):
        """
        Select the worker's tenant again on a connection Django just opened.

        Pools carry no tenant, so a connection Django reopens on its own (new
        request, CONN_MAX_AGE expiry) starts outside any tenant. Connections
        for other aliases, and pools no tenant was selected on yet, are left
        alone.
        """
        config = self._storage_config
        if alias != self.owner_name or config is None:
            return
        self.use_tenant_storage(config)

    def _restore(self, previous):
        # tryRestore(previous) orElse tryReset(default) orElse log
        if previous is not None and self._try_switch(previous, "Failed to switch back to previous tenant: %r"):
            return
        if self._try_switch(self.default_tenant, "Failed to reset to default tenant: %r"):
            return
        logger.error(
            "Unable to switch back to previous tenant %r or reset to default tenant %r; "
            "current tenant %r is no longer reliable",
            previous,
            self.default_tenant,
            self.current,
        )

    def _try_switch(self, tenant, message) -> bool:
        try:
            self._switch_to(tenant, self._validated_config(tenant))
        except Exception:
            logger.exception(message, tenant)
            return False
        return True

    # ========== Schema and Seeds ==========

    def import_database_schema(self):
        if self.database_schema_file:
            load_or_abort(self.database_schema_file, self)

    def seed_data(self):
        if self.seed_data_file:
            load_or_abort(self.seed_data_file, self)

    # ========== Driver Hooks ==========

    def select_switch_strategy(self, difference) -> SwitchStrategy:
        """A host change is the only reason for a full reconnect."""
        if "HOST" in CaseInsensitiveDict(difference):
            return SwitchStrategy.FULL_RECONNECT
        return SwitchStrategy.LIGHTWEIGHT

    def connection_owner_name(self, config) -> str:
        """Pool key: host and engine by default, the whole config with POOL_PER_CONFIG."""
        if self.pool_per_config:
            return f"{constants.OWNER_NAME_PREFIX}_{config_digest(config)}"

        host = config.get("HOST") or config.get("URL") or "127.0.0.1"
        host_hash = hashlib.md5(str(host).encode("utf-8")).hexdigest()
        engine = str(config.get("ENGINE") or "").rsplit(".", 1)[-1]
        return f"{constants.OWNER_NAME_PREFIX}_{host_hash}_{engine}"

    def tenant_name(self, tenant):
        """Storage name carried by a tenant name or config mapping."""
        if isinstance(tenant, Mapping):
            return CaseInsensitiveDict(tenant).get(self.tenant_config_key)
        return tenant

    def validate_tenant(self, tenant) -> bool:
        name = self.tenant_name(tenant)
        if not isinstance(name, str) or not name:
            return False
        if len(name.encode("utf-8")) > self.max_identifier_bytes:
            return False
        return not any(char in name for char in self.forbidden_identifier_chars)

    def use_tenant_storage(self, config):
        """
        Point the bound connection at the tenant's database/schema.

        Must raise TenantNotFound when the target does not exist and
        SwitchFailure for any other driver failure (the engine then retries
        on a fresh pool).
        """
        raise NotImplementedError

    def create_tenant(self, config):
        raise NotImplementedError

    def drop_tenant(self, config):
        self.driver.drop_database(self.owner_name, config[self.tenant_config_key])

    def database_exists(self, name) -> bool:
        raise NotImplementedError


def config_digest(config) -> str:
    """Stable digest of a config, independent of key case and order."""
    items = config.lower_items() if isinstance(config, CaseInsensitiveDict) else config.items()
    payload = json.dumps(sorted(items), default=str)
    return hashlib.md5(payload.encode("utf-8")).hexdigest()
