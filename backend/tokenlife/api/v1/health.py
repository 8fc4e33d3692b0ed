"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from tokenlife.api.deps import json_response, timing, token_engine
from tokenlife.core.extensions import db
from tokenlife.services._shared.errors import StoreUnavailableError

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Return database and denylist backend health."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    cache = token_engine().revocation_cache
    denylist_status = "ok"
    try:
        cache.count()
    except StoreUnavailableError:
        current_app.logger.exception("healthcheck.denylist_error")
        denylist_status = "fail"

    payload = {
        "status": "ok" if db_status == denylist_status == "ok" else "degraded",
        "db": db_status,
        "denylist": {"backend": cache.backend, "status": denylist_status},
        "scheduler": token_engine().scheduler.running,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload, status=200 if payload["status"] == "ok" else 503)
