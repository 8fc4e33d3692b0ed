"""Refresh-credential endpoints: rotate, validate, revoke."""

from __future__ import annotations

from flask import Blueprint, request

from tokenlife.api.deps import (
    client_info,
    json_response,
    no_store,
    optional_refresh_token,
    service_errors,
    timing,
    token_engine,
)
from tokenlife.schemas import RefreshSchema, TokenPairSchema, ValidateResponseSchema

bp = Blueprint("tokens", __name__)

refresh_schema = RefreshSchema()
token_pair_schema = TokenPairSchema()
validate_response_schema = ValidateResponseSchema()


@bp.post("/refresh")
@timing
@service_errors
def refresh():
    """Rotate a refresh credential. Any failure means: sign in again."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    device_info, source_address = client_info()
    pair = token_engine().rotation.refresh(
        data["refresh_token"], device_info=device_info, source_address=source_address
    )
    return no_store(json_response({"data": token_pair_schema.dump(pair)}))


@bp.post("/validate")
@timing
@service_errors
def validate():
    """Report whether a refresh credential could currently be used."""

    data = refresh_schema.load(request.get_json(silent=True) or {})
    valid = token_engine().rotation.is_valid(data["refresh_token"])
    return json_response({"data": validate_response_schema.dump({"valid": valid})})


@bp.post("/revoke")
@timing
def revoke():
    """Revoke one refresh credential. Idempotent; always succeeds."""

    raw = optional_refresh_token()
    if raw is not None:
        token_engine().rotation.revoke_one(raw)
    return json_response({"data": {"revoked": True}})
