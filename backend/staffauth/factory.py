"""Application factory wiring Flask extensions, services and blueprints."""

from __future__ import annotations

from flask import Flask

from staffauth.core.config import BaseConfig, get_config
from staffauth.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    :param config: Config object, class or import path. Defaults to the class
        selected by ``APP_ENV``.
    :raises ConfigError: When the token secrets are missing, equal or their
        lifetimes cannot be parsed. The app is never returned half-wired.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from staffauth.core import proxy

    proxy.init_app(app)

    from staffauth.core import extensions

    extensions.init_app(app)

    init_logging(app)

    from staffauth.core import cors

    cors.init_app(app)

    # Fails fast on bad signing configuration
    from staffauth.core import container

    container.init_app(app)

    from staffauth.api import init_app as init_api

    init_api(app)

    from staffauth.core import errors

    errors.init_app(app)

    from staffauth import cli as app_cli

    app_cli.init_app(app)

    return app
