"""
Job Value Objects

Architectural Intent:
- JobHandle is the immutable reference a backend hands back in place of an
  immediate result
- JobStatusReport is what a JobStatusClient answers when asked about a handle
- JobOutcome is the terminal verdict produced exactly once per handle by the
  JobWaiter: Succeeded, Failed or TimedOut
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum, auto
from typing import Any, Optional, Union

from cloudweave.domain.errors import JobTimeoutError


class JobStatus(Enum):
    PENDING = auto()
    SUCCEEDED = auto()
    FAILED = auto()


@dataclass(frozen=True)
class JobHandle:
    id: str
    submitted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("JobHandle id cannot be empty")

    def __str__(self) -> str:
        return self.id


@dataclass(frozen=True)
class JobStatusReport:
    status: JobStatus
    result: Any = None
    error: Optional[str] = None
    cause: Optional[BaseException] = field(default=None, compare=False)

    @classmethod
    def pending(cls) -> "JobStatusReport":
        return cls(JobStatus.PENDING)

    @classmethod
    def succeeded(cls, result: Any = None) -> "JobStatusReport":
        return cls(JobStatus.SUCCEEDED, result=result)

    @classmethod
    def failed(cls, error: str, cause: Optional[BaseException] = None) -> "JobStatusReport":
        return cls(JobStatus.FAILED, error=error, cause=cause)

    @property
    def is_terminal(self) -> bool:
        return self.status is not JobStatus.PENDING


@dataclass(frozen=True)
class Succeeded:
    handle: JobHandle
    result: Any = None


@dataclass(frozen=True)
class Failed:
    handle: JobHandle
    cause: BaseException


@dataclass(frozen=True)
class TimedOut:
    handle: JobHandle
    timeout: float

    def as_error(self) -> JobTimeoutError:
        return JobTimeoutError(self.handle.id, self.timeout)


JobOutcome = Union[Succeeded, Failed, TimedOut]
