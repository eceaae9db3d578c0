"""
Job Completion Waiter

Architectural Intent:
- Turns a fire-and-forget JobHandle into a single terminal JobOutcome
- Polls a JobStatusClient with exponential backoff until the job reaches
  SUCCEEDED or FAILED, or the deadline passes
- Never raises for job-level problems; the verdict is always a value
  (Succeeded, Failed or TimedOut) so callers decide what is fatal

Polling Strategy:
- Interval grows by BackoffPolicy.multiplier from initial_interval up to
  max_interval, optionally jittered
- A sleep never extends past the deadline; one final poll is made at the
  deadline before TimedOut is returned
- Each poll is bounded by request_timeout and by the time left before the
  deadline; a poll cut off by the deadline yields TimedOut
- Transport errors are retried with tenacity within the remaining time, then
  reported as Failed; any other poll error is reported as Failed at once
"""

from __future__ import annotations
import asyncio
import logging
import random
from dataclasses import dataclass, replace
from typing import Any, Optional, Sequence

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_exponential,
)

from cloudweave.domain.errors import JobFailedError, TransientBackendError
from cloudweave.domain.ports.job_status_port import JobStatusClient
from cloudweave.domain.value_objects.job import (
    Failed,
    JobHandle,
    JobOutcome,
    JobStatus,
    JobStatusReport,
    Succeeded,
    TimedOut,
)

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (TransientBackendError, ConnectionError, TimeoutError)

# lets the final poll at the deadline complete against a responsive backend
MIN_POLL_BUDGET = 0.01


@dataclass(frozen=True)
class BackoffPolicy:
    initial_interval: float = 0.05
    max_interval: float = 1.0
    multiplier: float = 1.5
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.initial_interval <= 0:
            raise ValueError("initial_interval must be positive")
        if self.max_interval < self.initial_interval:
            raise ValueError("max_interval must be >= initial_interval")
        if self.multiplier < 1.0:
            raise ValueError("multiplier must be >= 1.0")
        if not (0.0 <= self.jitter < 1.0):
            raise ValueError("jitter must be in [0, 1)")

    def next_interval(self, attempt: int) -> float:
        interval = min(
            self.initial_interval * (self.multiplier ** attempt), self.max_interval
        )
        if self.jitter:
            interval *= 1.0 + random.uniform(-self.jitter, self.jitter)
        return max(interval, 0.0)


@dataclass(frozen=True)
class RetryPolicy:
    attempts: int = 3
    min_wait: float = 0.05
    max_wait: float = 1.0

    def __post_init__(self) -> None:
        if self.attempts < 1:
            raise ValueError("attempts must be >= 1")


class JobWaiter:
    def __init__(
        self,
        client: JobStatusClient,
        default_timeout: float = 600.0,
        backoff: Optional[BackoffPolicy] = None,
        retry: Optional[RetryPolicy] = None,
        request_timeout: float = 30.0,
        telemetry: Optional[Any] = None,
    ) -> None:
        self._client = client
        self._default_timeout = default_timeout
        self._backoff = backoff or BackoffPolicy()
        self._retry = retry or RetryPolicy()
        self._request_timeout = request_timeout
        self._telemetry = telemetry

    @property
    def default_timeout(self) -> float:
        return self._default_timeout

    async def _poll(self, handle: JobHandle, deadline: float) -> JobStatusReport:
        loop = asyncio.get_running_loop()
        remaining = deadline - loop.time()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._retry.attempts)
            | stop_after_delay(max(remaining, 0.0)),
            wait=wait_exponential(
                multiplier=self._retry.min_wait,
                min=self._retry.min_wait,
                max=self._retry.max_wait,
            ),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                budget = max(deadline - loop.time(), MIN_POLL_BUDGET)
                return await asyncio.wait_for(
                    self._client.status(handle.id),
                    timeout=min(self._request_timeout, budget),
                )
        raise AssertionError("unreachable")

    async def wait_for(
        self,
        handle: JobHandle,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ) -> JobOutcome:
        timeout = self._default_timeout if timeout is None else timeout
        if timeout < 0:
            raise ValueError("timeout must be >= 0")
        backoff = self._backoff
        if poll_interval is not None:
            backoff = replace(
                backoff,
                initial_interval=poll_interval,
                max_interval=max(poll_interval, backoff.max_interval),
            )

        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline = started + timeout
        polls = 0
        outcome: JobOutcome

        while True:
            polls += 1
            try:
                report = await self._poll(handle, deadline)
            except TRANSIENT_ERRORS as e:
                if loop.time() >= deadline:
                    logger.warning("Job %s: deadline passed while polling: %s", handle, e)
                    outcome = TimedOut(handle, timeout)
                    break
                logger.warning("Job %s status unavailable after retries: %s", handle, e)
                outcome = Failed(handle, e)
                break
            except Exception as e:
                logger.warning("Job %s status query failed: %s", handle, e)
                outcome = Failed(handle, e)
                break

            if report.status is JobStatus.SUCCEEDED:
                outcome = Succeeded(handle, report.result)
                break
            if report.status is JobStatus.FAILED:
                outcome = Failed(
                    handle,
                    JobFailedError(handle.id, report.error or "unknown error", report.cause),
                )
                break

            now = loop.time()
            if now >= deadline:
                outcome = TimedOut(handle, timeout)
                break
            await asyncio.sleep(min(backoff.next_interval(polls - 1), deadline - now))

        elapsed_ms = (loop.time() - started) * 1000
        logger.debug(
            "Job %s finished as %s after %d polls (%.1fms)",
            handle,
            type(outcome).__name__,
            polls,
            elapsed_ms,
        )
        if self._telemetry:
            self._telemetry.record_job_wait(type(outcome).__name__, elapsed_ms, polls)
        return outcome

    async def wait_for_all(
        self, handles: Sequence[JobHandle], timeout: Optional[float] = None
    ) -> list[JobOutcome]:
        return list(await asyncio.gather(*(self.wait_for(h, timeout) for h in handles)))
