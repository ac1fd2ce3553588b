from __future__ import annotations

from flask import Flask

from . import config
from .db import init_db


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__)
    app.config.update(config.defaults())
    if overrides:
        app.config.update(overrides)
    app.url_map.strict_slashes = False

    from .api import bp

    app.register_blueprint(bp, url_prefix=app.config["API_PREFIX"] or None)
    init_db(app.config)
    return app
