"""Tests for scoped switching with ``use_tenant``."""

from __future__ import annotations

import logging

import pytest

from django_tenantswitch.exceptions import TenantNotFound


def test_previous_tenant_is_restored_after_the_block(backend, driver) -> None:
    with backend.use_tenant("acme") as active:
        assert active is backend
        assert backend.current == "acme"
        assert driver.active[backend.owner_name] == "acme"

    assert backend.current == "app_main"
    assert driver.active[backend.owner_name] == "app_main"


def test_previous_tenant_is_restored_when_the_block_raises(backend) -> None:
    with pytest.raises(RuntimeError, match="boom"):
        with backend.use_tenant("acme"):
            raise RuntimeError("boom")

    assert backend.current == "app_main"


def test_previous_tenant_is_restored_on_cancellation(backend) -> None:
    with pytest.raises(KeyboardInterrupt):
        with backend.use_tenant("initech"):
            raise KeyboardInterrupt

    assert backend.current == "app_main"
    assert backend.owner_name == backend.connection_owner_name(backend.config_for("app_main"))


def test_nested_blocks_restore_in_lifo_order(backend, driver) -> None:
    db1_owner = backend.owner_name

    with backend.use_tenant("acme"):
        with backend.use_tenant("initech"):
            assert backend.current == "initech"
            assert backend.owner_name != db1_owner
        assert backend.current == "acme"
        assert backend.owner_name == db1_owner
        assert driver.active[db1_owner] == "acme"

    assert backend.current == "app_main"
    assert driver.active[db1_owner] == "app_main"


def test_failed_switch_does_not_enter_the_block(backend) -> None:
    entered = False

    with pytest.raises(TenantNotFound):
        with backend.use_tenant("ghost"):
            entered = True

    assert entered is False
    assert backend.current == "app_main"


def test_unrestorable_previous_tenant_falls_back_to_default(backend, driver, caplog) -> None:
    backend.switch("globex")

    with pytest.raises(RuntimeError, match="inner failure"):
        with backend.use_tenant("acme"):
            driver.databases.discard("globex")
            raise RuntimeError("inner failure")

    assert backend.current == "app_main"
    assert "Failed to switch back to previous tenant: 'globex'" in caplog.text


def test_double_restore_failure_is_logged_without_raising(backend, driver, caplog) -> None:
    backend.switch("globex")

    with backend.use_tenant("acme"):
        driver.databases.discard("globex")
        driver.databases.discard("app_main")

    assert backend.current == "acme"
    assert "Failed to reset to default tenant: 'app_main'" in caplog.text
    assert "is no longer reliable" in caplog.text


def test_unbound_backend_restores_straight_to_default(make_backend, driver, caplog) -> None:
    driver.databases.discard("app_main")
    backend = make_backend()
    assert backend.current is None
    driver.databases.add("app_main")

    with caplog.at_level(logging.DEBUG, logger="django_tenantswitch"):
        with backend.use_tenant("acme"):
            assert backend.current == "acme"

    assert backend.current == "app_main"
    assert "Failed to switch back" not in caplog.text
