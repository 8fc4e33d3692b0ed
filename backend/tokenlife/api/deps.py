"""Shared API helpers for request parsing and cross-cutting concerns."""

from __future__ import annotations

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, current_app, g, jsonify, request
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request
from marshmallow import ValidationError

from tokenlife.core.errors import ServiceUnavailable, Unauthorized
from tokenlife.core.logger import ensure_request_id
from tokenlife.schemas import LogoutSchema
from tokenlife.services._shared.base import BaseService, ServiceContext
from tokenlife.services._shared.errors import ServiceError, StoreUnavailableError
from tokenlife.services.auth.service import AuthService
from tokenlife.services.tokens.engine import TokenEngine, get_token_engine

F = TypeVar("F", bound=Callable[..., Any])

_BEARER_PREFIX = "bearer "

_optional_refresh_schema = LogoutSchema()


def bearer_token() -> str | None:
    """Return the raw credential from ``Authorization: Bearer ...`` if present."""
    header = request.headers.get("Authorization", "")
    if header[: len(_BEARER_PREFIX)].lower() != _BEARER_PREFIX:
        return None
    token = header[len(_BEARER_PREFIX) :].strip()
    return token or None


def client_info() -> tuple[str | None, str | None]:
    """Return ``(device_info, source_address)`` for the current request.

    ``remote_addr`` already reflects ``X-Forwarded-For`` when ProxyFix is on.
    """
    return request.headers.get("User-Agent"), request.remote_addr


def optional_refresh_token() -> str | None:
    """Return the body's ``refresh_token`` for best-effort endpoints.

    Never raises: a missing, malformed or non-string value reads as absent,
    so logout and revoke still do the rest of their work.
    """
    try:
        data = _optional_refresh_schema.load(request.get_json(silent=True) or {})
    except ValidationError:
        return None
    return data.get("refresh_token") or None


def service_context() -> ServiceContext:
    device_info, source_address = client_info()
    return ServiceContext(
        actor_id=getattr(g, "subject_id", None),
        request_id=ensure_request_id(),
        source_address=source_address,
        device_info=device_info,
    )


def token_engine() -> TokenEngine:
    return get_token_engine()


def auth_service() -> AuthService:
    engine = get_token_engine()
    return AuthService(
        rotation=engine.rotation,
        codec=engine.codec,
        revocation_cache=engine.revocation_cache,
        ctx=service_context(),
    )


def require_auth(func: F) -> F:
    """Ensure the request carries a valid, non-denied access credential.

    The denylist is consulted before signature verification on every call.
    The subject id is exposed as ``g.subject_id``.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        raw = bearer_token()
        if raw:
            try:
                denied = get_token_engine().revocation_cache.contains(raw)
            except StoreUnavailableError as exc:
                raise ServiceUnavailable() from exc
            if denied:
                raise Unauthorized(
                    "Token has been revoked. Please sign in again.", code="token_revoked"
                )
        verify_jwt_in_request(optional=False)
        g.subject_id = str(get_jwt_identity())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def service_errors(func: F) -> F:
    """Translate service-layer exceptions into API errors."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        try:
            return func(*args, **kwargs)
        except ServiceError as exc:
            raise BaseService().translate_exceptions(exc) from exc

    return wrapper  # type: ignore[return-value]


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response


def no_store(response: Response) -> Response:
    """Mark a response carrying credentials as non-cacheable."""
    response.headers["Cache-Control"] = "no-store"
    response.headers["Pragma"] = "no-cache"
    return response


def timing(func: F) -> F:
    """Decorator capturing handler execution time in milliseconds."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        start = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            request_endpoint = getattr(request, "endpoint", None)
            current_app.logger.debug(
                "request.elapsed",
                extra={"endpoint": request_endpoint, "elapsed_ms": round(elapsed_ms, 2)},
            )

    return wrapper  # type: ignore[return-value]
