"""
tokenlife.services._shared.ports
================================

*Ports* (hexagonal interfaces) the token engine depends on.

Modules
-------
- :mod:`token_codec`:
    :class:`~.TokenCodec` and :class:`~.TokenKind`, minting and verifying
    signed credentials.

- :mod:`refresh_token_store`:
    :class:`~.RefreshTokenStore`, durable refresh-credential records.

- :mod:`revocation_cache`:
    :class:`~.RevocationCache`, the access-credential denylist, plus the
    process-local :class:`~.InMemoryRevocationCache` fallback.

Concrete adapters for external systems live under ``tokenlife.infra``.
"""

from __future__ import annotations

from .refresh_token_store import RefreshTokenStore
from .revocation_cache import InMemoryRevocationCache, RevocationCache
from .token_codec import TokenCodec, TokenKind

__all__ = [
    "InMemoryRevocationCache",
    "RefreshTokenStore",
    "RevocationCache",
    "TokenCodec",
    "TokenKind",
]
