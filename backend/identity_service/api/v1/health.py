"""Health check endpoint."""

from __future__ import annotations

from flask import Blueprint, current_app
from redis.exceptions import RedisError  # type: ignore[import-untyped]
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from identity_service.api.deps import json_response, timing
from identity_service.core.extensions import db, get_redis

bp = Blueprint("health", __name__)


@bp.get("/health")
@timing
def healthcheck():
    """Report database and Redis reachability. Always 200; inspect the fields."""

    db_status = "ok"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        current_app.logger.exception("healthcheck.db_error")
        db_status = "fail"

    redis_status = "ok"
    try:
        get_redis().ping()
    except (RedisError, RuntimeError):
        current_app.logger.exception("healthcheck.redis_error")
        redis_status = "fail"

    status = "ok" if db_status == redis_status == "ok" else "degraded"
    payload = {
        "status": status,
        "db": db_status,
        "redis": redis_status,
        "version": current_app.config.get("APP_VERSION", "dev"),
    }
    return json_response(payload)
