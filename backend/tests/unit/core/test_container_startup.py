from __future__ import annotations

import pytest

from staffauth.core import config as app_config
from staffauth.core.container import get_container
from staffauth.factory import create_app
from staffauth.services._shared.errors import ConfigError
from staffauth.services._shared.ports.cache_store import InMemoryCacheStore


class _SameSecrets(app_config.TestingConfig):
    JWT_REFRESH_SECRET = app_config.TestingConfig.JWT_ACCESS_SECRET


class _NoRefreshSecret(app_config.TestingConfig):
    JWT_REFRESH_SECRET = ""


class _BadLifetime(app_config.TestingConfig):
    JWT_ACCESS_EXPIRES = "fortnight"


@pytest.mark.parametrize(
    ("config_cls", "fragment"),
    [
        (_SameSecrets, "must differ"),
        (_NoRefreshSecret, "JWT_REFRESH_SECRET is not set"),
        (_BadLifetime, "fortnight"),
    ],
)
def test_startup_fails_fast_on_bad_signing_config(config_cls, fragment):
    with pytest.raises(ConfigError, match=fragment):
        create_app(config_cls)


def test_container_defaults_to_in_memory_cache(app):
    services = get_container(app)

    assert isinstance(services.cache_store, InMemoryCacheStore)
    assert services.user_cache.list_ttl == app.config["CACHE_TTL_USER_LIST"]
    assert services.codec.settings.access_secret != services.codec.settings.refresh_secret
