import django
import pytest
from django.conf import settings

from tests.stubs import TENANTS, RecordingDriver


def pytest_configure():
    if not settings.configured:
        settings.configure(
            DATABASES={"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}},
            INSTALLED_APPS=["django.contrib.contenttypes", "django.contrib.auth"],
            TENANTSWITCH_CONFIG={},
            USE_TZ=True,
        )
        django.setup()


@pytest.fixture
def driver():
    return RecordingDriver(databases={"app_main", "acme", "globex", "initech"})


@pytest.fixture
def resolver():
    from django_tenantswitch.resolvers import MappingTenantResolver

    return MappingTenantResolver(TENANTS, defaults={"ENGINE": "django.db.backends.mysql", "USER": "app"})


@pytest.fixture
def make_backend(driver, resolver):
    from django_tenantswitch.backends import DatabaseTenantBackend

    def _make(**kwargs):
        kwargs.setdefault("driver", driver)
        kwargs.setdefault("resolver", resolver)
        kwargs.setdefault("default_tenant", "app_main")
        return DatabaseTenantBackend(**kwargs)

    return _make


@pytest.fixture
def backend(make_backend):
    return make_backend()
