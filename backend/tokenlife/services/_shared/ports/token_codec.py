from __future__ import annotations

from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Protocol


class TokenKind(str, Enum):
    """Value of the ``type`` claim distinguishing the two credential kinds."""

    ACCESS = "access"
    REFRESH = "refresh"


class TokenCodec(Protocol):
    """
    Port for minting and verifying signed credentials.

    Implementations must fail closed: any parse, signature or structure
    problem raises :class:`~tokenlife.services._shared.errors.MalformedCredentialError`
    and a passed ``exp`` raises
    :class:`~tokenlife.services._shared.errors.CredentialExpiredError`.
    """

    def issue(
        self,
        subject: str,
        claims: dict[str, Any],
        ttl: timedelta,
        *,
        kind: TokenKind,
    ) -> str: ...

    def verify(self, raw: str) -> dict[str, Any]: ...

    def kind_of(self, raw: str) -> TokenKind: ...

    def expires_at(self, raw: str) -> datetime: ...
