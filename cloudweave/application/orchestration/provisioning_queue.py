"""
Provisioning Queue

Architectural Intent:
- Bounded-concurrency lanes, one per partition (zone, datacenter, region)
- Limits how many provisioning pipelines hit one partition at a time
- Excess submissions wait in FIFO order; nothing runs before admission

Backpressure Strategy:
- A finishing task hands its slot directly to the oldest waiter, so a late
  arrival can never overtake the queue
- A waiter that is cancelled or times out is removed without running; if
  its slot was handed over in the same tick it is passed on to the next one
- Cancellation of an admitted task is ordinary asyncio cancellation; the
  slot is released when the task unwinds
"""

from __future__ import annotations
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from cloudweave.domain.errors import QueueAdmissionTimeout

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class _Lane:
    limit: int
    running: int = 0
    peak_running: int = 0
    completed: int = 0
    waiters: deque[asyncio.Future] = field(default_factory=deque)


@dataclass(frozen=True)
class LaneStats:
    partition: str
    limit: int
    running: int
    waiting: int
    peak_running: int
    completed: int


class ProvisioningQueue:
    def __init__(
        self,
        default_concurrency: int = 2,
        partition_limits: Optional[Mapping[str, int]] = None,
        admission_timeout: Optional[float] = None,
        telemetry: Optional[Any] = None,
    ) -> None:
        limits = dict(partition_limits or {})
        for partition, limit in [("default", default_concurrency), *limits.items()]:
            if limit < 1:
                raise ValueError(f"Concurrency for {partition} must be >= 1, got {limit}")
        self._default_concurrency = default_concurrency
        self._partition_limits = limits
        self._admission_timeout = admission_timeout
        self._telemetry = telemetry
        self._lanes: dict[str, _Lane] = {}

    def _lane(self, partition: str) -> _Lane:
        lane = self._lanes.get(partition)
        if lane is None:
            limit = self._partition_limits.get(partition, self._default_concurrency)
            lane = self._lanes[partition] = _Lane(limit=limit)
        return lane

    def _occupy(self, lane: _Lane) -> None:
        lane.running += 1
        lane.peak_running = max(lane.peak_running, lane.running)

    def _release(self, lane: _Lane) -> None:
        while lane.waiters:
            waiter = lane.waiters.popleft()
            if not waiter.done():
                # slot passes straight to the waiter; running stays the same
                waiter.set_result(None)
                return
        lane.running -= 1

    def _abandon(self, lane: _Lane, waiter: asyncio.Future) -> None:
        if waiter.done() and not waiter.cancelled():
            self._release(lane)
            return
        try:
            lane.waiters.remove(waiter)
        except ValueError:
            pass

    async def _acquire(self, partition: str, lane: _Lane, timeout: Optional[float]) -> None:
        if lane.running < lane.limit and not lane.waiters:
            self._occupy(lane)
            return

        waiter = asyncio.get_running_loop().create_future()
        lane.waiters.append(waiter)
        logger.debug(
            "Partition %s at capacity (%d/%d running), %d waiting",
            partition,
            lane.running,
            lane.limit,
            len(lane.waiters),
        )
        try:
            async with asyncio.timeout(timeout):
                await waiter
        except TimeoutError as e:
            self._abandon(lane, waiter)
            raise QueueAdmissionTimeout(partition, timeout or 0.0) from e
        except asyncio.CancelledError:
            self._abandon(lane, waiter)
            raise

    async def submit(
        self,
        partition: str,
        task_factory: Callable[[], Awaitable[T]],
        admission_timeout: Optional[float] = None,
    ) -> T:
        """
        Run task_factory() once a slot in partition is free and return its result.

        The factory is not called until the submission is admitted.
        """
        lane = self._lane(partition)
        timeout = admission_timeout if admission_timeout is not None else self._admission_timeout
        loop = asyncio.get_running_loop()
        queued_at = loop.time()

        await self._acquire(partition, lane, timeout)

        wait_ms = (loop.time() - queued_at) * 1000
        if self._telemetry:
            self._telemetry.record_queue_wait(partition, wait_ms)
        try:
            return await task_factory()
        finally:
            lane.completed += 1
            self._release(lane)

    def stats(self, partition: str) -> LaneStats:
        lane = self._lane(partition)
        return LaneStats(
            partition=partition,
            limit=lane.limit,
            running=lane.running,
            waiting=sum(1 for w in lane.waiters if not w.done()),
            peak_running=lane.peak_running,
            completed=lane.completed,
        )

    def partitions(self) -> list[str]:
        return sorted(self._lanes)
