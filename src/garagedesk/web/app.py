from __future__ import annotations

import logging

from flask import Flask, request

from ..config import AppConfig
from ..wiring import Repositories, build_services
from .errors import register_error_handlers
from .policy import register_policy
from .responses import GarageJSONProvider
from .routes.auth import auth_bp
from .routes.clients import clients_bp
from .routes.invoices import invoices_bp
from .routes.organizations import organizations_bp
from .routes.parts import parts_bp
from .routes.reports import reports_bp
from .routes.services import services_bp
from .routes.system import system_bp
from .routes.vehicles import vehicles_bp

log = logging.getLogger(__name__)

BLUEPRINTS = (
    system_bp,
    auth_bp,
    clients_bp,
    organizations_bp,
    vehicles_bp,
    parts_bp,
    services_bp,
    invoices_bp,
    reports_bp,
)


def create_app(cfg: AppConfig, *, db, repos: Repositories | None = None) -> Flask:
    """Assemble the API app around an already constructed ``Db`` handle.

    Does not open the pool or start a server; callers own both.
    """
    app = Flask(__name__)
    app.json = GarageJSONProvider(app)

    app.extensions["garagedesk.config"] = cfg
    app.extensions["garagedesk.db"] = db
    app.extensions["garagedesk.services"] = build_services(repos or Repositories(), cfg.auth)

    if cfg.is_development:
        @app.before_request
        def log_request() -> None:
            log.debug("%s %s", request.method, request.path)

    register_policy(app)
    for bp in BLUEPRINTS:
        app.register_blueprint(bp)
    register_error_handlers(app)

    return app
