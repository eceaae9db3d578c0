"""
Error Taxonomy

Architectural Intent:
- Single hierarchy rooted at CloudweaveError so callers can catch orchestrator
  failures without catching programming errors
- Backend errors describe what the control plane reported
- Orchestration errors describe what the orchestrator decided to do about it
- Lower layers raise these types; only the lifecycle facade logs and
  translates them into the caller-facing NodeCreationError / TeardownError

Error Hierarchy:
- BackendError
    - TransientBackendError: transport or rate-limit error, safe to retry
    - ResourceNotFoundError: target resource is absent
    - JobFailedError: an asynchronous job reached the FAILED state
- JobTimeoutError: a job stayed PENDING past its deadline
- StepFailure: a provisioning step failed; carries compensation failures
- CompensationFailure: a compensating delete failed
- PrerequisiteFailure: a shared resource (key pair, security group) could not be resolved
- NodeCreationError: caller-facing failure of a plan that had started, labeled
  by CreationFailureKind
- TeardownError: caller-facing destroy failure listing the incomplete steps
- QueueAdmissionTimeout: a submission waited too long for a partition slot
- PlanStateError: an illegal plan state transition was attempted
"""

from __future__ import annotations
from enum import Enum, auto
from typing import Any, Optional, Sequence


class CloudweaveError(Exception):
    """Base class for all cloudweave errors."""


# =============================================================================
# Backend Errors
# =============================================================================

class BackendError(CloudweaveError):
    """A backend call was rejected or could not be completed."""


class TransientBackendError(BackendError):
    """Transport, throttling or rate-limit error. Retrying may succeed."""


class ResourceNotFoundError(BackendError):
    def __init__(self, kind: str, resource_id: str) -> None:
        super().__init__(f"{kind} {resource_id!r} not found")
        self.kind = kind
        self.resource_id = resource_id


class JobFailedError(BackendError):
    def __init__(self, job_id: str, reason: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"job {job_id} failed: {reason}")
        self.job_id = job_id
        self.reason = reason
        self.cause = cause


# =============================================================================
# Orchestration Errors
# =============================================================================

class JobTimeoutError(CloudweaveError):
    def __init__(self, job_id: str, timeout: float) -> None:
        super().__init__(f"job {job_id} did not complete within {timeout:.2f}s")
        self.job_id = job_id
        self.timeout = timeout


class PlanStateError(CloudweaveError):
    """Raised when a plan is driven through an illegal transition."""


class CompensationFailure(CloudweaveError):
    def __init__(self, step_name: str, step_index: int, cause: BaseException) -> None:
        super().__init__(f"compensation of step {step_index} ({step_name}) failed: {cause}")
        self.step_name = step_name
        self.step_index = step_index
        self.cause = cause


class StepFailure(CloudweaveError):
    """
    A provisioning step failed and the plan was unwound.

    The original cause is kept as ``cause``; any compensations that could not
    be completed are listed in ``compensation_failures``.
    """

    def __init__(
        self,
        plan_id: str,
        step_name: str,
        step_index: int,
        cause: BaseException,
        compensation_failures: Sequence[CompensationFailure] = (),
    ) -> None:
        self.plan_id = plan_id
        self.step_name = step_name
        self.step_index = step_index
        self.cause = cause
        self.compensation_failures = tuple(compensation_failures)
        rollback = "complete" if self.rollback_complete else "incomplete"
        super().__init__(
            f"step {step_index} ({step_name}) failed: {cause} [rollback {rollback}]"
        )

    @property
    def rollback_complete(self) -> bool:
        return not self.compensation_failures


class PrerequisiteFailure(CloudweaveError):
    def __init__(self, resource: str, key: Any, cause: BaseException) -> None:
        super().__init__(f"could not resolve {resource} {key}: {cause}")
        self.resource = resource
        self.key = key
        self.cause = cause


class CreationFailureKind(Enum):
    ROLLED_BACK = auto()
    ROLLBACK_INCOMPLETE = auto()


class NodeCreationError(CloudweaveError):
    """
    Caller-facing failure of create_node.

    ``kind`` tells whether whatever was created has been removed again
    (ROLLED_BACK) or some resources may have been left behind and need
    manual cleanup (ROLLBACK_INCOMPLETE). Failures before any step ran are
    raised as PrerequisiteFailure instead.
    """

    def __init__(self, node_name: str, kind: CreationFailureKind, cause: CloudweaveError) -> None:
        super().__init__(f"creating node {node_name!r} failed ({kind.name.lower()}): {cause}")
        self.node_name = node_name
        self.kind = kind
        self.cause = cause

    @property
    def rollback_complete(self) -> bool:
        return self.kind is not CreationFailureKind.ROLLBACK_INCOMPLETE

    @property
    def failed_step(self) -> Optional[str]:
        if isinstance(self.cause, StepFailure):
            return self.cause.step_name
        return None


class TeardownError(CloudweaveError):
    def __init__(self, node_id: str, failures: Sequence[tuple[str, BaseException]]) -> None:
        self.node_id = node_id
        self.failures = tuple(failures)
        steps = ", ".join(name for name, _ in self.failures)
        super().__init__(f"teardown of node {node_id!r} incomplete; failed steps: {steps}")

    @property
    def failed_steps(self) -> list[str]:
        return [name for name, _ in self.failures]


class QueueAdmissionTimeout(CloudweaveError):
    def __init__(self, partition: str, timeout: float) -> None:
        super().__init__(
            f"no slot free in partition {partition!r} within {timeout:.2f}s"
        )
        self.partition = partition
        self.timeout = timeout
