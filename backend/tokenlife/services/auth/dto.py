from __future__ import annotations

from dataclasses import dataclass

# ---------------------------- Input DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LoginIn:
    """
    Input DTO for login.

    :param email: User email (normalized by the repository).
    :type email: str
    :param password: Raw password (to be verified).
    :type password: str
    :param device_info: Client ``User-Agent``.
    :param source_address: Client address after proxy resolution.
    """

    email: str
    password: str
    device_info: str | None = None
    source_address: str | None = None


@dataclass(frozen=True, slots=True)
class RegisterIn:
    """
    Input DTO for self-service registration.

    :param email: User email (normalized by the model).
    :param username: Public handle, unique.
    :param password: Raw password (hashed by the model setter).
    """

    email: str
    username: str
    password: str


@dataclass(frozen=True, slots=True)
class LogoutIn:
    """
    Input DTO for logout. Both credentials are optional.

    :param access_token: Encoded access JWT to deny until it expires.
    :param refresh_token: Encoded refresh JWT to revoke.
    """

    access_token: str | None = None
    refresh_token: str | None = None


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class LogoutOut:
    """
    What logout actually achieved; the client sees success either way.

    :param refresh_revoked: A live refresh record was revoked.
    :param access_denied: The access credential was added to the denylist.
    """

    refresh_revoked: bool
    access_denied: bool


@dataclass(frozen=True, slots=True)
class RegisteredOut:
    id: str
    email: str
    username: str
    status: str


@dataclass(frozen=True, slots=True)
class IdentityOut:
    id: str
    email: str
    username: str
    status: str
    roles: tuple[str, ...]
    active_sessions: int
