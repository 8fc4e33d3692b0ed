"""Base class shared by application services."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from tokenlife.core import errors as api_errors
from tokenlife.services._shared.errors import (
    AccountStatusError,
    ConflictError,
    InvalidCredentialsError,
    ReauthenticationRequired,
    ServiceError,
    StoreUnavailableError,
)
from tokenlife.uow.sqlalchemy_uow import (
    SQLAlchemyReadOnlyUnitOfWork,
    SQLAlchemyUnitOfWork,
)


@dataclass(slots=True)
class ServiceContext:
    """
    Carry cross-cutting request-scoped data.

    :param actor_id: Authenticated subject identifier.
    :param request_id: Correlation id for logging/tracing.
    :param source_address: Client address as seen after proxy resolution.
    :param device_info: Client ``User-Agent`` (truncated).
    """

    actor_id: str | None = None
    request_id: str | None = None
    source_address: str | None = None
    device_info: str | None = None


class BaseService:
    """
    Base class for application services.

    Responsibilities
    ----------------
    * Provide helpers to run read-only and read-write units of work.
    * Convert driver-level outages into :class:`StoreUnavailableError`.
    * Centralize translation of service errors to API errors.

    Notes
    -----
    Services must never touch the global session; always use a Unit of Work.
    """

    DEFAULT_READ_ISOLATION = "READ COMMITTED"

    def __init__(self, *, ctx: ServiceContext | None = None) -> None:
        self.ctx = ctx or ServiceContext()

    # -------------------------- UoW helpers ---------------------------------

    def rw_uow(self) -> SQLAlchemyUnitOfWork:
        """
        Create a read-write Unit of Work.

        :returns: Read-write UoW instance.
        :rtype: SQLAlchemyUnitOfWork
        """
        return SQLAlchemyUnitOfWork()

    def ro_uow(
        self, *, isolation: str | None = None, enforce_db_readonly: bool = True
    ) -> SQLAlchemyReadOnlyUnitOfWork:
        """
        Create a read-only Unit of Work.

        :param isolation: Transaction isolation level (e.g. "READ COMMITTED").
        :type isolation: str | None
        :param enforce_db_readonly: Apply `SET TRANSACTION READ ONLY` when supported.
        :type enforce_db_readonly: bool
        :returns: Read-only UoW instance.
        :rtype: SQLAlchemyReadOnlyUnitOfWork
        """
        return SQLAlchemyReadOnlyUnitOfWork(
            isolation_level=isolation or self.DEFAULT_READ_ISOLATION,
            enforce_db_readonly=enforce_db_readonly,
        )

    @contextmanager
    def store_guard(self) -> Iterator[None]:
        """Re-raise connectivity and timeout failures as :class:`StoreUnavailableError`.

        Wrap the whole ``with uow`` block so failures at commit time are
        converted too.
        """
        try:
            yield
        except (OperationalError, PoolTimeoutError) as exc:
            raise StoreUnavailableError("database") from exc
        except DBAPIError as exc:
            if exc.connection_invalidated:
                raise StoreUnavailableError("database") from exc
            raise

    # -------------------------- Error handling ------------------------------

    def translate_exceptions(self, exc: Exception) -> Exception:
        """
        Map service-level errors to API-level (HTTP) errors.

        :param exc: Exception raised within the service.
        :type exc: Exception
        :returns: Translated exception ready to be re-raised.
        :rtype: Exception
        """
        if isinstance(exc, AccountStatusError):
            # → 403; the account exists but may not hold a session
            return api_errors.Forbidden(str(exc), code="account_unavailable")

        if isinstance(exc, InvalidCredentialsError):
            # → 401; login failures do not reveal which half was wrong
            return api_errors.Unauthorized(str(exc), code="invalid_credentials")

        if isinstance(exc, ReauthenticationRequired):
            # → 401 with one uniform message
            return api_errors.ReauthenticationRequired()

        if isinstance(exc, ConflictError):
            # → 409
            return api_errors.Conflict(str(exc))

        if isinstance(exc, StoreUnavailableError):
            # → 503
            return api_errors.ServiceUnavailable()

        if isinstance(exc, ServiceError):
            return api_errors.APIError(message=str(exc), status_code=400, code="bad_request")

        return exc
