"""Authentication-related Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from identity_service.core.config import (
    MAX_EMAIL_LENGTH,
    MIN_PASSWORD_LENGTH,
    VERIFICATION_CODE_LENGTH,
)


class SendCodeSchema(Schema):
    """Input payload for requesting a registration code."""

    email = fields.Email(required=True, validate=validate.Length(max=MAX_EMAIL_LENGTH))


class RegisterSchema(Schema):
    """Input payload for account registration."""

    email = fields.Email(required=True, validate=validate.Length(max=MAX_EMAIL_LENGTH))
    password = fields.String(
        required=True, validate=validate.Length(min=MIN_PASSWORD_LENGTH, max=128)
    )
    code = fields.String(
        required=True,
        validate=validate.Regexp(
            rf"^[0-9]{{{VERIFICATION_CODE_LENGTH}}}$", error="Code must be 6 digits."
        ),
    )
    nickname = fields.String(required=True, validate=validate.Length(min=1, max=64))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    email = fields.Email(required=True, validate=validate.Length(max=MAX_EMAIL_LENGTH))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshTokenSchema(Schema):
    """Input payload carrying a refresh token (refresh and logout)."""

    refresh_token = fields.String(required=True)


class TokenPairSchema(Schema):
    """Response payload with both tokens."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)
    refresh_expires_in = fields.Integer(required=True)
