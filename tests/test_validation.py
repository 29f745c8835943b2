"""Tests for tenant identifier validation."""

from __future__ import annotations

import pytest

from django_tenantswitch.exceptions import InvalidTenantIdentifier


@pytest.mark.parametrize(
    "tenant",
    [
        "../etc/passwd",
        "tenant/acme",
        "tenant\\acme",
        "tenant.acme",
        "x" * 65,
        "é" * 33,
        "",
        None,
        {"NAME": "a/b", "HOST": "db-1"},
        {"HOST": "db-1"},
    ],
)
def test_invalid_identifiers_are_rejected_before_any_driver_call(backend, driver, tenant) -> None:
    driver.calls.clear()

    assert backend.validate_tenant(tenant) is False
    with pytest.raises(InvalidTenantIdentifier):
        backend.switch(tenant)

    assert driver.calls == []
    assert backend.current == "app_main"


def test_identifier_of_exactly_64_bytes_is_accepted(backend) -> None:
    assert backend.validate_tenant("x" * 64) is True
    assert backend.validate_tenant({"name": "acme"}) is True


def test_create_and_drop_validate_too(backend, driver) -> None:
    driver.calls.clear()

    with pytest.raises(InvalidTenantIdentifier):
        backend.create("evil/tenant")
    with pytest.raises(InvalidTenantIdentifier):
        backend.drop("evil\\tenant")

    assert driver.calls == []


def test_invalid_identifier_is_a_value_error(backend) -> None:
    with pytest.raises(ValueError):
        backend.switch("a/b")
