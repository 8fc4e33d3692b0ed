"""Refresh-token lifecycle: rotation engine, cleanup and wiring."""

from __future__ import annotations

from .cleanup import CleanupScheduler, TokenCleanupService
from .dto import CleanupReport, SessionView, TokenLifetimes, TokenPair
from .engine import TokenEngine, build_token_engine, get_token_engine
from .rotation import RotationEngine

__all__ = [
    "CleanupReport",
    "CleanupScheduler",
    "RotationEngine",
    "SessionView",
    "TokenCleanupService",
    "TokenEngine",
    "TokenLifetimes",
    "TokenPair",
    "build_token_engine",
    "get_token_engine",
]
