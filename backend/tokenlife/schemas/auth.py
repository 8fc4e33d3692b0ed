"""Authentication and token Marshmallow schemas."""

from __future__ import annotations

from marshmallow import EXCLUDE, Schema, fields, validate

_RAW_TOKEN = validate.Length(min=1, max=4096)


class RegisterSchema(Schema):
    """Input payload for account registration."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=254))
    username = fields.String(required=True, validate=validate.Length(min=3, max=50))
    password = fields.String(required=True, validate=validate.Length(min=8, max=128))


class LoginSchema(Schema):
    """Input payload for authenticating a user."""

    class Meta:
        unknown = EXCLUDE

    email = fields.Email(required=True, validate=validate.Length(max=254))
    password = fields.String(required=True, validate=validate.Length(min=1, max=128))


class RefreshSchema(Schema):
    """Input payload carrying one refresh credential."""

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(required=True, validate=_RAW_TOKEN)


class LogoutSchema(Schema):
    """Logout and revoke payload; the refresh credential is optional.

    No length bounds: these endpoints always succeed, and an unusable
    credential simply matches no record.
    """

    class Meta:
        unknown = EXCLUDE

    refresh_token = fields.String(load_default=None, allow_none=True)


class TokenPairSchema(Schema):
    """Response payload with a fresh credential pair."""

    access_token = fields.String(required=True)
    refresh_token = fields.String(required=True)
    token_type = fields.String(dump_default="Bearer")
    expires_in = fields.Integer(required=True)


class RegisteredSchema(Schema):
    """A freshly registered account; no credentials are issued."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    status = fields.String(required=True)


class ValidateResponseSchema(Schema):
    valid = fields.Boolean(required=True)


class LogoutResponseSchema(Schema):
    refresh_revoked = fields.Boolean(required=True)
    access_denied = fields.Boolean(required=True)


class WhoAmISchema(Schema):
    """Identity of the authenticated subject, read fresh from the database."""

    id = fields.String(required=True)
    email = fields.Email(required=True)
    username = fields.String(required=True)
    status = fields.String(required=True)
    roles = fields.List(fields.String(), required=True)
    active_sessions = fields.Integer(required=True)
