from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, cast

import jwt
from flask_jwt_extended import create_access_token, create_refresh_token, decode_token
from flask_jwt_extended.exceptions import JWTExtendedException

from tokenlife.services._shared.errors import CredentialExpiredError, MalformedCredentialError
from tokenlife.services._shared.ports import TokenCodec, TokenKind

_REQUIRED_CLAIMS = ("sub", "exp", "jti", "type")


@dataclass(slots=True)
class JWTTokenCodec(TokenCodec):
    """
    Codec backed by Flask-JWT-Extended (PyJWT, ``JWT_SECRET_KEY``).

    The library writes the credential kind into the ``type`` claim; access
    credentials additionally carry ``roles``. Refresh credentials carry no
    authorization claims, they are re-derived at every rotation.

    .. note::
       Requires an active Flask app context with JWT settings.
    """

    def issue(
        self,
        subject: str,
        claims: dict[str, Any],
        ttl: timedelta,
        *,
        kind: TokenKind,
    ) -> str:
        if kind is TokenKind.ACCESS:
            token = create_access_token(
                identity=subject, additional_claims=dict(claims), expires_delta=ttl
            )
        else:
            token = create_refresh_token(
                identity=subject, additional_claims=dict(claims), expires_delta=ttl
            )
        return cast(str, token)

    def verify(self, raw: str) -> dict[str, Any]:
        """Check signature and expiry and return the claims.

        :raises CredentialExpiredError: The ``exp`` claim has passed.
        :raises MalformedCredentialError: Anything else is wrong.
        """
        if not raw or not isinstance(raw, str):
            raise MalformedCredentialError()
        try:
            claims = cast(dict[str, Any], decode_token(raw))
        except jwt.ExpiredSignatureError as exc:
            raise CredentialExpiredError() from exc
        except (jwt.PyJWTError, JWTExtendedException, KeyError, ValueError, TypeError) as exc:
            raise MalformedCredentialError() from exc
        if any(name not in claims for name in _REQUIRED_CLAIMS):
            raise MalformedCredentialError()
        if claims["type"] not in (TokenKind.ACCESS.value, TokenKind.REFRESH.value):
            raise MalformedCredentialError()
        return claims

    def kind_of(self, raw: str) -> TokenKind:
        return TokenKind(self.verify(raw)["type"])

    def expires_at(self, raw: str) -> datetime:
        return datetime.fromtimestamp(int(self.verify(raw)["exp"]), tz=UTC)
