from __future__ import annotations

from flask import Flask

from .blueprints import register_blueprints
from .config import CONFIG_BY_NAME, BaseConfig
from .errors import register_error_handlers
from .extensions import init_app as init_extensions


def create_app(config_name: str | None = None) -> Flask:
    config_cls = CONFIG_BY_NAME.get(config_name or "default", BaseConfig)
    app = Flask(__name__, template_folder="templates")
    app.config.from_object(config_cls)

    init_extensions(app)
    register_blueprints(app)
    register_error_handlers(app)

    return app


__all__ = ["create_app"]
