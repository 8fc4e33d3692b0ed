"""Service layer public API.

Re-exports
----------
- Base primitives (from ``tokenlife.services._shared.base``)
    * :class:`BaseService`
    * :class:`ServiceContext`

- Service errors (from ``tokenlife.services._shared.errors``)
    * :class:`ServiceError`
    * :class:`ReauthenticationRequired`
    * :class:`StoreUnavailableError`

The token engine lives in :mod:`tokenlife.services.tokens` and the login
facade in :mod:`tokenlife.services.auth`; import them from there.
"""

from __future__ import annotations

from ._shared.base import BaseService, ServiceContext
from ._shared.errors import ReauthenticationRequired, ServiceError, StoreUnavailableError

__all__ = [
    "BaseService",
    "ServiceContext",
    "ServiceError",
    "ReauthenticationRequired",
    "StoreUnavailableError",
]
