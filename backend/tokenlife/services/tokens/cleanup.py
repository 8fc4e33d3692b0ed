"""Garbage collection of refresh records and the periodic job runner."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from tokenlife.services._shared.base import BaseService
from tokenlife.services._shared.clock import Clock, system_clock
from tokenlife.services._shared.errors import ServiceError
from tokenlife.services.tokens.dto import CleanupReport

log = logging.getLogger(__name__)


class TokenCleanupService(BaseService):
    """
    Delete expired refresh records and revoked ones past retention.

    Each batch is its own unit of work so a failure only loses the batch in
    flight; work already deleted stays deleted.

    Parameters
    ----------
    revocation_retention: timedelta
        Revoked rows younger than this are kept for audit and replay detection.
    batch_size: int
        Maximum ids fetched and deleted per batch.
    max_batches: int
        Bound on batches per run; remaining rows wait for the next run.
    """

    def __init__(
        self,
        *,
        revocation_retention: timedelta,
        batch_size: int = 100,
        max_batches: int = 50,
        clock: Clock = system_clock,
    ) -> None:
        super().__init__()
        self.revocation_retention = revocation_retention
        self.batch_size = max(1, int(batch_size))
        self.max_batches = max(1, int(max_batches))
        self._clock = clock

    def run_once(self, now: datetime | None = None) -> CleanupReport:
        """Run one bounded cleanup pass. Never raises."""
        now = now or self._clock()
        cutoff = now - self.revocation_retention
        deleted = 0
        batches = 0
        try:
            while batches < self.max_batches:
                with self.store_guard(), self.rw_uow() as uow:
                    ids = uow.refresh_tokens.find_expired_or_stale_revoked_ids(
                        now, cutoff, self.batch_size
                    )
                    if ids:
                        deleted += uow.refresh_tokens.delete_by_ids(ids)
                batches += 1
                if len(ids) < self.batch_size:
                    break
        except (ServiceError, SQLAlchemyError):
            log.error(
                "Refresh token cleanup failed",
                exc_info=True,
                extra={"job": "token_cleanup", "deleted": deleted, "batches": batches},
            )
            return CleanupReport(deleted=deleted, batches=batches, failed=True)

        exhausted = batches >= self.max_batches and len(ids) == self.batch_size
        log.info(
            "Refresh token cleanup finished",
            extra={"job": "token_cleanup", "deleted": deleted, "batches": batches},
        )
        if exhausted:
            log.info("Cleanup hit its batch bound; remaining rows deferred to next run")
        return CleanupReport(deleted=deleted, batches=batches, exhausted=exhausted)


@dataclass(slots=True)
class ScheduledJob:
    name: str
    interval: timedelta
    func: Callable[[], Any]
    next_run: datetime


class CleanupScheduler:
    """
    Owns one daemon thread running registered maintenance jobs.

    Constructed and started explicitly by the application factory; nothing
    runs at import time. ``run_pending`` is the whole scheduling logic and is
    what tests drive with a fake clock.

    Parameters
    ----------
    app: flask.Flask | None
        When given, every job runs inside ``app.app_context()``.
    clock: Clock
        Source of "now" for due-time computation.
    tick: float
        Seconds between two checks of the job table.
    """

    def __init__(self, *, app: Any = None, clock: Clock = system_clock, tick: float = 30.0) -> None:
        self._app = app
        self._clock = clock
        self._tick = tick
        self._jobs: list[ScheduledJob] = []
        self._lock = threading.Lock()
        self._shutdown = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def jobs(self) -> list[ScheduledJob]:
        with self._lock:
            return list(self._jobs)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def every(self, interval: timedelta, func: Callable[[], Any], *, name: str) -> ScheduledJob:
        """Register ``func`` to run every ``interval``; first run one interval from now."""
        if interval <= timedelta(0):
            raise ValueError("Job interval must be positive.")
        job = ScheduledJob(name=name, interval=interval, func=func, next_run=self._clock() + interval)
        with self._lock:
            self._jobs.append(job)
        return job

    def run_pending(self, now: datetime | None = None) -> list[str]:
        """Run every job due at ``now``; return the names of jobs that ran.

        A failing job is logged and rescheduled like a successful one.
        """
        now = now or self._clock()
        with self._lock:
            due = [job for job in self._jobs if job.next_run <= now]
            for job in due:
                job.next_run = now + job.interval
        for job in due:
            self._run(job)
        return [job.name for job in due]

    def _run(self, job: ScheduledJob) -> None:
        try:
            if self._app is not None:
                with self._app.app_context():
                    job.func()
            else:
                job.func()
        except Exception:
            log.error("Scheduled job failed", exc_info=True, extra={"job": job.name})

    def start(self) -> None:
        if self.running:
            return
        self._shutdown.clear()
        self._thread = threading.Thread(
            target=self._loop, name="token-maintenance", daemon=True
        )
        self._thread.start()
        log.info("Token maintenance scheduler started", extra={"job": "scheduler"})

    def shutdown(self, timeout: float = 5.0) -> None:
        self._shutdown.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        self._thread = None

    def _loop(self) -> None:
        while not self._shutdown.wait(self._tick):
            self.run_pending()
