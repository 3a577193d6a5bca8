"""Application factory for the cloudstorage API."""

from __future__ import annotations

from flask import Flask

from cloudstorage.core.config import BaseConfig, get_config
from cloudstorage.core.logger import configure_logging, init_app as init_logging


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """
    Build the Flask application.

    Wiring order matters: the service container reads extensions (database,
    Redis) and refuses to boot with placeholder signing secrets, and the API
    blueprints resolve services from it on every request.

    :param config: Config class, import path or object. ``None`` selects by
        ``APP_ENV``.
    :returns: Configured application.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from cloudstorage.core import container, cors, errors, extensions, proxy

    proxy.init_app(app)
    extensions.init_app(app)
    init_logging(app)
    cors.init_app(app)
    container.init_app(app)

    from cloudstorage.api import init_app as init_api

    init_api(app)
    errors.init_app(app)

    from cloudstorage import cli as app_cli

    app_cli.init_app(app)

    return app
