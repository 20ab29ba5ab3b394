from __future__ import annotations

import logging
from datetime import datetime, timezone

from flask import Blueprint, jsonify

from ...db import DbError
from ..context import get_config, get_db

log = logging.getLogger(__name__)

system_bp = Blueprint("system", __name__)


@system_bp.get("/")
def index():
    cfg = get_config()
    return jsonify({"success": True, "message": f"{cfg.name} API", "environment": cfg.environment})


@system_bp.get("/health")
def health():
    now = datetime.now(timezone.utc)
    try:
        get_db().ping()
    except DbError as e:
        log.warning("Health check failed: %s", e)
        return jsonify({"status": "ERROR", "message": "Database unavailable", "timestamp": now}), 503
    return jsonify({"status": "OK", "timestamp": now})
