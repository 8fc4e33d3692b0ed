"""Convenience exports for application schemas."""

from __future__ import annotations

from .auth import (
    LoginSchema,
    LogoutResponseSchema,
    LogoutSchema,
    RefreshSchema,
    RegisteredSchema,
    RegisterSchema,
    TokenPairSchema,
    ValidateResponseSchema,
    WhoAmISchema,
)

__all__ = [
    "LoginSchema",
    "LogoutResponseSchema",
    "LogoutSchema",
    "RefreshSchema",
    "RegisteredSchema",
    "RegisterSchema",
    "TokenPairSchema",
    "ValidateResponseSchema",
    "WhoAmISchema",
]
