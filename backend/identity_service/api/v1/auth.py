"""Authentication endpoints: verification codes, registration and tokens."""

from __future__ import annotations

from flask import Blueprint, request

from identity_service.api.deps import json_response, service_errors, timing
from identity_service.infra.wiring import build_account_service, build_token_service
from identity_service.schemas import (
    LoginSchema,
    RefreshTokenSchema,
    RegisterSchema,
    SendCodeSchema,
    TokenPairSchema,
    UserSchema,
)
from identity_service.services.accounts.dto import LoginIn, RegisterIn, SendCodeIn
from identity_service.services.tokens.dto import LogoutIn, RefreshIn

bp = Blueprint("auth", __name__)

send_code_schema = SendCodeSchema()
register_schema = RegisterSchema()
login_schema = LoginSchema()
refresh_schema = RefreshTokenSchema()
token_schema = TokenPairSchema()
user_schema = UserSchema()


def _body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/send-code")
@timing
@service_errors
def send_code():
    """Mail a registration code to the given address."""

    data = send_code_schema.load(_body())
    build_account_service().send_verification_code(SendCodeIn(email=data["email"]))
    return json_response({"data": {"sent": True}})


@bp.post("/register")
@timing
@service_errors
def register():
    """Create an account from a verified email and return it."""

    data = register_schema.load(_body())
    user = build_account_service().register(RegisterIn(**data))
    return json_response({"data": user_schema.dump(user)}, status=201)


@bp.post("/login")
@timing
@service_errors
def login():
    """Exchange email and password for an access/refresh pair."""

    data = login_schema.load(_body())
    pair = build_account_service().login(LoginIn(**data))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/refresh")
@timing
@service_errors
def refresh():
    """Rotate a refresh token; the old one stops working."""

    data = refresh_schema.load(_body())
    pair = build_token_service().refresh_token(RefreshIn(refresh_token=data["refresh_token"]))
    return json_response({"data": token_schema.dump(pair)})


@bp.post("/logout")
@timing
@service_errors
def logout():
    """Revoke a refresh token. Unknown tokens are accepted."""

    data = refresh_schema.load(_body())
    build_token_service().logout(LogoutIn(refresh_token=data["refresh_token"]))
    return json_response({"data": {"logged_out": True}})
