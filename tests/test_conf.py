"""Tests for TENANTSWITCH_CONFIG access."""

from __future__ import annotations

from pathlib import Path

import pytest
from django.core.exceptions import ImproperlyConfigured
from django.test import override_settings
from django.utils.text import slugify

from django_tenantswitch.conf import settings


def test_defaults() -> None:
    with override_settings(TENANTSWITCH_CONFIG={}):
        assert settings.MASTER_DB_ALIAS == "default"
        assert settings.DEFAULT_TENANT is None
        assert settings.FORCE_RECONNECT_ON_SWITCH is False
        assert settings.POOL_PER_CONFIG is False
        assert settings.SEED_AFTER_CREATE is False
        assert settings.MIGRATE_AFTER_CREATE is False
        assert settings.DATABASE_SCHEMA_FILE is None
        assert settings.TENANT_BACKEND == "django_tenantswitch.backends.DatabaseTenantBackend"
        assert settings.TENANT_RESOLVER is None
        assert settings.TENANT_DECORATOR is None
        assert settings.EXCLUDED_MODELS == []


def test_overrides_are_picked_up_and_dropped() -> None:
    config = {
        "DEFAULT_TENANT": "app_main",
        "FORCE_RECONNECT_ON_SWITCH": True,
        "DATABASE_SCHEMA_FILE": Path("/srv/schema.sql"),
        "EXCLUDED_MODELS": ("auth.User",),
    }

    with override_settings(TENANTSWITCH_CONFIG=config):
        assert settings.DEFAULT_TENANT == "app_main"
        assert settings.FORCE_RECONNECT_ON_SWITCH is True
        assert settings.DATABASE_SCHEMA_FILE == "/srv/schema.sql"
        assert settings.EXCLUDED_MODELS == ["auth.User"]

    assert settings.DEFAULT_TENANT is None
    assert settings.FORCE_RECONNECT_ON_SWITCH is False


def test_decorator_accepts_a_dotted_path() -> None:
    with override_settings(TENANTSWITCH_CONFIG={"TENANT_DECORATOR": "django.utils.text.slugify"}):
        assert settings.TENANT_DECORATOR is slugify


def test_decorator_accepts_a_callable() -> None:
    with override_settings(TENANTSWITCH_CONFIG={"TENANT_DECORATOR": str.lower}):
        assert settings.TENANT_DECORATOR is str.lower


def test_unimportable_decorator_is_a_configuration_error() -> None:
    with override_settings(TENANTSWITCH_CONFIG={"TENANT_DECORATOR": "django.utils.text.nothing_here"}):
        with pytest.raises(ImproperlyConfigured, match="nothing_here"):
            settings.TENANT_DECORATOR


def test_excluded_models_must_be_a_list() -> None:
    with override_settings(TENANTSWITCH_CONFIG={"EXCLUDED_MODELS": "auth.User"}):
        with pytest.raises(ImproperlyConfigured):
            settings.EXCLUDED_MODELS


def test_config_must_be_a_dict() -> None:
    with override_settings(TENANTSWITCH_CONFIG=["DEFAULT_TENANT"]):
        with pytest.raises(ImproperlyConfigured):
            settings.TENANTSWITCH_CONFIG


def test_other_settings_fall_through_to_django() -> None:
    assert settings.USE_TZ is True
    assert "default" in settings.DATABASES
