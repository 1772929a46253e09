"""Forced expiry and countdown progress for one request."""

from __future__ import annotations

import asyncio
import time
from asyncio import AbstractEventLoop
from collections.abc import Callable
from contextlib import suppress
from datetime import UTC, datetime, timedelta

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler
from apscheduler.triggers.date import DateTrigger
from loguru import logger


def running_loop() -> AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def clamp01(value: float) -> float:
    return min(1.0, max(0.0, value))


class TimeoutGovernor:
    """Schedule a one-shot expiry and report how much of the budget is left."""

    def __init__(
        self,
        timeout_seconds: float,
        *,
        lead_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.timeout_seconds = max(0.0, float(timeout_seconds or 0))
        self.lead_seconds = lead_seconds
        self._clock = clock
        self.created_at = clock()
        self._job: Job | None = None
        self._loop: AbstractEventLoop | None = None
        self._on_expire: Callable[[], None] | None = None

    @property
    def enabled(self) -> bool:
        return self.timeout_seconds > 0

    @property
    def armed(self) -> bool:
        return self._job is not None

    def elapsed(self) -> float:
        return self._clock() - self.created_at

    def progress(self) -> float | None:
        """Remaining share of the budget, reaching 0 ``lead_seconds`` before expiry."""

        if not self.enabled:
            return None
        span = self.timeout_seconds - self.lead_seconds
        if span <= 0:
            return clamp01((self.timeout_seconds - self.elapsed()) / self.timeout_seconds)
        return clamp01((span - self.elapsed()) / span)

    def arm(self, scheduler: BaseScheduler, on_expire: Callable[[], None], *, job_id: str | None = None) -> None:
        if not self.enabled or self._job is not None:
            return
        self._on_expire = on_expire
        self._loop = running_loop()
        remaining = max(0.0, self.timeout_seconds - self.elapsed())
        self._job = scheduler.add_job(
            self._fire,
            trigger=DateTrigger(run_date=datetime.now(UTC) + timedelta(seconds=remaining)),
            id=job_id,
            misfire_grace_time=None,
        )
        logger.debug("timeout.armed job={} seconds={}", self._job.id, remaining)

    def disarm(self) -> None:
        job, self._job = self._job, None
        self._on_expire = None
        if job is None:
            return
        with suppress(JobLookupError):
            job.remove()

    def _fire(self) -> None:
        on_expire = self._on_expire
        self._job = None
        if on_expire is None:
            return

        loop = self._loop
        # Scheduler jobs run on a worker thread; transitions belong to the owning loop.
        if loop is not None and loop.is_running() and running_loop() is not loop:
            loop.call_soon_threadsafe(on_expire)
            return
        on_expire()
