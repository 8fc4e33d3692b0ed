"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and never depend on Flask or HTTP.
They are the stable contract between the token engine, its stores and the
API layer. Translation to RFC 7807 responses happens in
``BaseService.translate_exceptions()``.

Every subclass of :class:`ReauthenticationRequired` means the same thing to a
client: discard both credentials and sign in again. The subclasses exist for
logging and tests, never to tell a client *why*.
"""

from __future__ import annotations


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - The API layer or BaseService translates them to APIError.
    """


# --------------------------------------------------------------------------- #
# Re-authentication family
# --------------------------------------------------------------------------- #


class ReauthenticationRequired(ServiceError):
    """The presented credential can no longer establish a session."""


class InvalidOrRevokedError(ReauthenticationRequired):
    """Unknown, rotated-out or revoked refresh credential.

    Unknown and revoked are deliberately indistinguishable.
    """

    def __init__(self, message: str = "Refresh credential is invalid or revoked") -> None:
        super().__init__(message)


class TokenExpiredError(ReauthenticationRequired):
    """Credential is past an expiry horizon.

    :param horizon: ``"sliding"``, ``"absolute"``, ``"sliding+absolute"`` or
        ``"signature"`` (the signed ``exp`` claim). Diagnostic only.
    """

    def __init__(self, horizon: str) -> None:
        super().__init__(f"Refresh credential expired ({horizon})")
        self.horizon = horizon


class CredentialExpiredError(TokenExpiredError):
    """The signed credential's own ``exp`` claim has passed."""

    def __init__(self) -> None:
        super().__init__("signature")


class MalformedCredentialError(ReauthenticationRequired):
    """Bad signature, unparsable payload or wrong credential kind."""

    def __init__(self, message: str = "Credential is malformed") -> None:
        super().__init__(message)


class InvalidCredentialsError(ReauthenticationRequired):
    """Email/password pair did not match."""

    def __init__(self, message: str = "Invalid email or password") -> None:
        super().__init__(message)


class AccountStatusError(ReauthenticationRequired):
    """The subject exists but may not hold a session right now."""


class AccountDisabledError(AccountStatusError):
    def __init__(self, message: str = "Account is not active") -> None:
        super().__init__(message)


class AccountLockedError(AccountStatusError):
    def __init__(self, message: str = "Account is locked") -> None:
        super().__init__(message)


# --------------------------------------------------------------------------- #
# Identity
# --------------------------------------------------------------------------- #


class ConflictError(ServiceError):
    """
    Raised when a unique constraint or business rule conflict occurs.

    :param entity: Entity name (e.g., "User").
    :param detail: Short human-readable explanation.
    """

    def __init__(self, entity: str, detail: str) -> None:
        super().__init__(f"Conflict on {entity}: {detail}")
        self.entity = entity
        self.detail = detail


# --------------------------------------------------------------------------- #
# Infrastructure
# --------------------------------------------------------------------------- #


class StoreUnavailableError(ServiceError):
    """Persistent store or denylist backend unreachable or timed out.

    Transient from the caller's point of view; safe to retry.
    """

    def __init__(self, store: str, message: str | None = None) -> None:
        super().__init__(message or f"{store} unavailable")
        self.store = store
