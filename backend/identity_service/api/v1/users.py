"""Endpoints for the authenticated caller's own profile."""

from __future__ import annotations

from flask import Blueprint, g, request

from identity_service.api.deps import json_response, require_auth, service_errors, timing
from identity_service.infra.wiring import build_account_service
from identity_service.schemas import ProfileUpdateSchema, UserSchema
from identity_service.services.accounts.dto import ProfileUpdateIn

bp = Blueprint("users", __name__)

user_schema = UserSchema()
profile_update_schema = ProfileUpdateSchema()


@bp.get("/me")
@timing
@service_errors
@require_auth
def get_me():
    user = build_account_service().get_profile(g.user_id)
    return json_response({"data": user_schema.dump(user)})


@bp.patch("/me")
@timing
@service_errors
@require_auth
def update_me():
    """Change nickname and/or avatar; omitted fields stay as they are."""

    data = profile_update_schema.load(request.get_json(silent=True) or {})
    user = build_account_service().update_profile(g.user_id, ProfileUpdateIn(**data))
    return json_response({"data": user_schema.dump(user)})
