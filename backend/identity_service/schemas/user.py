"""User profile Marshmallow schemas."""

from __future__ import annotations

from marshmallow import Schema, fields, validate


class UserSchema(Schema):
    """Public account representation (no credentials)."""

    id = fields.Integer(dump_only=True)
    email = fields.Email(dump_only=True)
    nickname = fields.String(dump_only=True)
    avatar_url = fields.String(dump_only=True, allow_none=True)
    is_premium = fields.Boolean(dump_only=True)
    created_at = fields.DateTime(dump_only=True)
    updated_at = fields.DateTime(dump_only=True)


class ProfileUpdateSchema(Schema):
    """Partial update of the caller's profile.

    Omitted keys stay unchanged; ``""`` clears the avatar. ``null`` is
    rejected for both fields.
    """

    nickname = fields.String(validate=validate.Length(max=64))
    avatar_url = fields.String(validate=validate.Length(max=512))
