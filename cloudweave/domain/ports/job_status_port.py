"""
Job Status Port

Architectural Intent:
- The single question the JobWaiter asks a backend: "what is the state of
  this job right now?"
- Implementations may raise TransientBackendError (or ConnectionError /
  TimeoutError) for a poll that could not be answered; the waiter retries
  those within the job's deadline
"""

from typing import Protocol, runtime_checkable

from cloudweave.domain.value_objects.job import JobStatusReport


@runtime_checkable
class JobStatusClient(Protocol):
    async def status(self, job_id: str) -> JobStatusReport: ...
