"""Repository package exposing persistence-layer access for all models."""

from __future__ import annotations

from tokenlife.repositories.base import BaseRepository
from tokenlife.repositories.refresh_token import RefreshTokenRepository
from tokenlife.repositories.user import RoleRepository, SubjectClaims, UserRepository

__all__ = [
    "BaseRepository",
    "RefreshTokenRepository",
    "RoleRepository",
    "SubjectClaims",
    "UserRepository",
]
