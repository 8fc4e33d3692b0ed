"""Application factory for the token lifecycle service."""

from __future__ import annotations

import atexit
import logging

from flask import Flask

from tokenlife.core.config import BaseConfig, get_config
from tokenlife.core.logger import configure_logging, init_app as init_logging

log = logging.getLogger(__name__)


def create_app(
    config: str | type[BaseConfig] | object | None = None,
    *,
    instance_relative_config: bool = True,
    instance_config_filename: str = "config.py",
) -> Flask:
    """Build and configure the Flask application.

    Parameters
    ----------
    config:
        Config name (``"development"``, ``"testing"``, ...), a config class or
        object. ``None`` resolves it from ``APP_ENV``.
    instance_relative_config, instance_config_filename:
        Optional overrides loaded from the instance folder.

    Notes
    -----
    The token engine is built after the extensions so its maintenance jobs
    can open database sessions, and before the blueprints that resolve it
    through ``app.extensions``. A started cleanup scheduler is stopped when
    the process exits.
    """

    app = Flask(__name__, instance_relative_config=instance_relative_config)

    app.config.from_object(get_config() if config is None else config)
    if instance_relative_config and instance_config_filename:
        app.config.from_pyfile(instance_config_filename, silent=True)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    from tokenlife.core import cors, errors, extensions, proxy

    proxy.init_app(app)
    extensions.init_app(app)
    init_logging(app)

    from tokenlife.services.tokens import engine as token_engine

    engine = token_engine.init_app(app)
    if engine.scheduler.running:
        atexit.register(engine.scheduler.shutdown)

    cors.init_app(app)

    from tokenlife.api import init_app as init_api

    init_api(app)
    errors.init_app(app)

    from tokenlife import cli as app_cli

    app_cli.init_app(app)

    log.info(
        "app.ready",
        extra={
            "backend": engine.revocation_cache.backend,
            "job": ",".join(job.name for job in engine.scheduler.jobs),
        },
    )
    return app
