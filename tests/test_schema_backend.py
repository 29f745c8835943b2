"""Tests for the PostgreSQL schema-per-tenant backend."""

from __future__ import annotations

import pytest

from django_tenantswitch.backends import SchemaTenantBackend
from django_tenantswitch.backends.schema_backend import quote_pgsql_name
from django_tenantswitch.exceptions import InvalidTenantIdentifier, TenantNotFound
from tests.stubs import RecordingDriver


@pytest.fixture
def schema_driver() -> RecordingDriver:
    return RecordingDriver(databases={"public", "acme"})


@pytest.fixture
def schema_backend(schema_driver) -> SchemaTenantBackend:
    return SchemaTenantBackend(driver=schema_driver)


def test_defaults_to_the_public_schema(schema_backend, schema_driver) -> None:
    assert schema_backend.default_tenant == "public"
    assert schema_backend.current == "public"
    assert schema_driver.statements()[-1] == 'SET search_path TO "public"'


def test_switch_rewrites_search_path_on_the_same_pool(schema_backend, schema_driver) -> None:
    owner = schema_backend.owner_name

    schema_backend.switch("acme")

    assert schema_backend.owner_name == owner
    assert schema_driver.active[owner] == "acme"
    assert schema_driver.establish_count[owner] == 1


def test_missing_schema_raises_before_touching_search_path(schema_backend, schema_driver) -> None:
    with pytest.raises(TenantNotFound):
        schema_backend.switch("ghost")

    assert 'SET search_path TO "ghost"' not in schema_driver.statements()
    assert schema_backend.current == "public"


@pytest.mark.parametrize("tenant", ["pg_catalog", 'acme"; DROP', "s" * 64, "a.b"])
def test_rejects_unsafe_schema_names(schema_backend, schema_driver, tenant) -> None:
    calls_before = len(schema_driver.calls)

    with pytest.raises(InvalidTenantIdentifier):
        schema_backend.switch(tenant)

    assert len(schema_driver.calls) == calls_before


def test_create_and_drop_schema(schema_backend, schema_driver) -> None:
    schema_backend.create("beta")

    assert 'CREATE SCHEMA "beta"' in schema_driver.statements()
    assert "beta" in schema_driver.databases
    assert schema_backend.current == "public"

    schema_backend.drop("beta")

    assert 'DROP SCHEMA "beta" CASCADE' in schema_driver.statements()
    assert "beta" not in schema_driver.databases
    assert schema_backend.current == "public"


def test_broken_connection_is_rebuilt(schema_backend, schema_driver) -> None:
    owner = schema_backend.owner_name
    schema_driver.broken["acme"] = 1

    schema_backend.switch("acme")

    assert ("remove", owner) in schema_driver.calls
    assert schema_driver.establish_count[owner] == 2
    assert schema_driver.active[owner] == "acme"


def test_quote_pgsql_name_escapes_quotes() -> None:
    assert quote_pgsql_name('a"b') == '"a""b"'
