"""Per-application container for the token lifecycle components."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import cast

from flask import Flask, current_app

from tokenlife.infra.jwt.token_codec import JWTTokenCodec
from tokenlife.infra.revocation import build_revocation_cache
from tokenlife.services._shared.clock import Clock, system_clock
from tokenlife.services._shared.ports import RevocationCache, TokenCodec
from tokenlife.services.tokens.cleanup import CleanupScheduler, TokenCleanupService
from tokenlife.services.tokens.dto import TokenLifetimes
from tokenlife.services.tokens.rotation import RotationEngine

log = logging.getLogger(__name__)

EXTENSION_KEY = "token_engine"


@dataclass(slots=True)
class TokenEngine:
    """Everything the request path and the scheduler share, owned by one app."""

    lifetimes: TokenLifetimes
    codec: TokenCodec
    revocation_cache: RevocationCache
    rotation: RotationEngine
    cleanup: TokenCleanupService
    scheduler: CleanupScheduler


def build_token_engine(
    app: Flask,
    *,
    clock: Clock = system_clock,
    revocation_cache: RevocationCache | None = None,
) -> TokenEngine:
    """Wire the components from ``app.config`` and register the maintenance jobs.

    The scheduler is returned stopped; the caller decides whether to start it.
    """
    cfg = app.config
    lifetimes = TokenLifetimes.from_config(cfg)
    if lifetimes.sliding_window > lifetimes.absolute_lifetime:
        log.warning(
            "REFRESH_SLIDING_WINDOW exceeds REFRESH_ABSOLUTE_LIFETIME; "
            "the absolute ceiling will always expire first"
        )

    codec = JWTTokenCodec()
    cache = revocation_cache or build_revocation_cache(
        cfg.get("REDIS_URL"),
        socket_timeout=cfg.get("REDIS_SOCKET_TIMEOUT", 2),
        clock=clock,
    )
    rotation = RotationEngine(codec=codec, lifetimes=lifetimes, clock=clock)
    cleanup = TokenCleanupService(
        revocation_retention=lifetimes.revocation_retention,
        batch_size=cfg.get("TOKEN_CLEANUP_BATCH_SIZE", 100),
        max_batches=cfg.get("TOKEN_CLEANUP_MAX_BATCHES", 50),
        clock=clock,
    )

    scheduler = CleanupScheduler(app=app, clock=clock)
    scheduler.every(
        timedelta(seconds=int(cfg.get("TOKEN_CLEANUP_INTERVAL", 1800))),
        cleanup.run_once,
        name="token_cleanup",
    )
    if cache.backend == "memory":
        scheduler.every(
            timedelta(seconds=int(cfg.get("DENYLIST_SWEEP_INTERVAL", 900))),
            cache.sweep,
            name="denylist_sweep",
        )

    return TokenEngine(
        lifetimes=lifetimes,
        codec=codec,
        revocation_cache=cache,
        rotation=rotation,
        cleanup=cleanup,
        scheduler=scheduler,
    )


def init_app(app: Flask) -> TokenEngine:
    """Build the engine, store it on ``app.extensions`` and optionally start the scheduler."""
    engine = build_token_engine(app)
    app.extensions[EXTENSION_KEY] = engine
    if app.config.get("TOKEN_SCHEDULER_ENABLED", False):
        engine.scheduler.start()
    return engine


def get_token_engine() -> TokenEngine:
    """Return the engine of the current application."""
    engine = current_app.extensions.get(EXTENSION_KEY)
    if engine is None:
        raise RuntimeError("Token engine is not initialized. Call init_app() first.")
    return cast(TokenEngine, engine)
