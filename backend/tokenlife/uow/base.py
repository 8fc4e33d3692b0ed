"""
Abstract Unit of Work contracts for the token engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from tokenlife.repositories import RoleRepository, UserRepository
    from tokenlife.services._shared.ports import RefreshTokenStore


class SupportsCommit(Protocol):
    def commit(self) -> None: ...
    def rollback(self) -> None: ...


class UnitOfWork(ABC):
    """
    Transactional boundary around one engine operation.

    A rotation, a family revocation or one cleanup batch each run inside a
    single unit of work, so a failure leaves no partially applied state.

    Attributes
    ----------
    users, roles:
        Identity collaborator, read when claims are derived.
    refresh_tokens:
        Durable refresh-credential records.
    """

    users: UserRepository
    roles: RoleRepository
    refresh_tokens: RefreshTokenStore

    @abstractmethod
    def __enter__(self) -> UnitOfWork: ...
    @abstractmethod
    def __exit__(self, exc_type, exc, tb) -> None: ...
    @abstractmethod
    def commit(self) -> None: ...
    @abstractmethod
    def rollback(self) -> None: ...
