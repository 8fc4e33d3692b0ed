"""Transactional boundaries for the token engine.

Rotation, family revocation and cleanup batches each run in one
:class:`SQLAlchemyUnitOfWork`; claim lookups and validity checks use
:class:`SQLAlchemyReadOnlyUnitOfWork`.
"""

from .base import SupportsCommit, UnitOfWork
from .sqlalchemy_uow import SQLAlchemyReadOnlyUnitOfWork, SQLAlchemyUnitOfWork

__all__ = [
    "SupportsCommit",
    "UnitOfWork",
    "SQLAlchemyUnitOfWork",
    "SQLAlchemyReadOnlyUnitOfWork",
]
