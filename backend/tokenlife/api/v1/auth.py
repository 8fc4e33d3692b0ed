"""Session endpoints: registration, login, logout, logout everywhere, whoami."""

from __future__ import annotations

from flask import Blueprint, g, request

from tokenlife.api.deps import (
    auth_service,
    bearer_token,
    client_info,
    json_response,
    no_store,
    optional_refresh_token,
    require_auth,
    service_errors,
    timing,
)
from tokenlife.schemas import (
    LoginSchema,
    LogoutResponseSchema,
    RegisteredSchema,
    RegisterSchema,
    TokenPairSchema,
    WhoAmISchema,
)
from tokenlife.services.auth.dto import LoginIn, LogoutIn, RegisterIn

bp = Blueprint("auth", __name__)

register_schema = RegisterSchema()
registered_schema = RegisteredSchema()
login_schema = LoginSchema()
token_pair_schema = TokenPairSchema()
logout_response_schema = LogoutResponseSchema()
whoami_schema = WhoAmISchema()


@bp.post("/register")
@timing
@service_errors
def register():
    """Create an account awaiting approval; no session is started."""

    data = register_schema.load(request.get_json(silent=True) or {})
    account = auth_service().register(
        RegisterIn(email=data["email"], username=data["username"], password=data["password"])
    )
    return json_response({"data": registered_schema.dump(account)}, status=201)


@bp.post("/login")
@timing
@service_errors
def login():
    """Authenticate credentials and issue an access/refresh pair."""

    data = login_schema.load(request.get_json(silent=True) or {})
    device_info, source_address = client_info()
    pair = auth_service().login(
        LoginIn(
            email=data["email"],
            password=data["password"],
            device_info=device_info,
            source_address=source_address,
        )
    )
    return no_store(json_response({"data": token_pair_schema.dump(pair)}))


@bp.post("/logout")
@timing
def logout():
    """Revoke the presented credentials. Always succeeds."""

    outcome = auth_service().logout(
        LogoutIn(access_token=bearer_token(), refresh_token=optional_refresh_token())
    )
    return json_response({"data": logout_response_schema.dump(outcome)})


@bp.post("/logout-all")
@timing
@require_auth
@service_errors
def logout_all():
    """Revoke every refresh credential of the caller."""

    revoked = auth_service().logout_all(g.subject_id, access_token=bearer_token())
    return json_response({"data": {"revoked": revoked}})


@bp.get("/me")
@timing
@require_auth
@service_errors
def whoami():
    """Return the authenticated identity with its current roles."""

    identity = auth_service().whoami(g.subject_id)
    return json_response({"data": whoami_schema.dump(identity)})
