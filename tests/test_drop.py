"""Tests for dropping tenants."""

from __future__ import annotations

import pytest

from django_tenantswitch import signals
from django_tenantswitch.exceptions import TenantNotFound


def test_drop_removes_the_database(backend, driver) -> None:
    owner = backend.owner_name

    backend.drop("acme")

    assert ("drop_database", owner, "acme") in driver.calls
    assert "acme" not in driver.databases
    assert backend.current == "app_main"
    assert driver.active[owner] == "app_main"


def test_drop_of_missing_tenant_raises_and_keeps_current(backend, driver) -> None:
    backend.switch("globex")

    with pytest.raises(TenantNotFound):
        backend.drop("ghost")

    assert driver.calls_named("drop_database") == []
    assert backend.current == "globex"
    assert driver.active[backend.owner_name] == "globex"


def test_dropping_the_current_tenant_falls_back_to_default(backend, driver) -> None:
    backend.switch("acme")

    backend.drop("acme")

    assert backend.current == "app_main"
    assert driver.active[backend.owner_name] == "app_main"


def test_drop_on_another_host_checks_existence_there(backend, driver) -> None:
    db1_owner = backend.owner_name
    db2_owner = backend.connection_owner_name({"HOST": "db-2", "ENGINE": "django.db.backends.mysql"})

    backend.drop("initech")

    exists_checks = driver.calls_named("fetch_value")
    assert exists_checks[-1][1] == db2_owner
    assert exists_checks[-1][3] == ("initech",)
    assert ("drop_database", db2_owner, "initech") in driver.calls
    assert backend.owner_name == db1_owner


def test_tenant_dropped_signal_only_on_success(backend) -> None:
    dropped: list[object] = []

    def _receiver(sender, backend, tenant, **kwargs):
        dropped.append(tenant)

    signals.tenant_dropped.connect(_receiver)
    try:
        backend.drop("acme")
        with pytest.raises(TenantNotFound):
            backend.drop("ghost")
    finally:
        signals.tenant_dropped.disconnect(_receiver)

    assert dropped == ["acme"]


def test_dropped_tenant_is_current_until_restored(backend, monkeypatch) -> None:
    seen: list[object] = []
    restore = backend._restore

    def _restore(previous):
        seen.append(backend.current)
        restore(previous)

    monkeypatch.setattr(backend, "_restore", _restore)

    backend.drop("acme")

    assert seen == ["acme"]
    assert backend.current == "app_main"
