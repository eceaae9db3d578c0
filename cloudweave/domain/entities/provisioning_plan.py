"""
Provisioning Plan Module

Architectural Intent:
- ProvisioningPlan is the consistency boundary for one create-node call
- Plan lifecycle is managed through state transitions enforced by its methods;
  illegal transitions raise PlanStateError
- completed_steps holds exactly the steps whose action succeeded and whose
  compensation has not been invoked yet; the pipeline pops from its tail
- Steps return explicit StepResult / StepError values so the compensation
  trigger is a data branch, not a caught exception
- Domain events (see domain.events.plan_events) are collected on the plan
  and drained by the pipeline

State Machine:
    PENDING -> RUNNING -> SUCCEEDED
                       -> COMPENSATING -> COMPENSATION_SUCCEEDED
                                       -> COMPENSATION_FAILED
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass
from enum import Enum, auto
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from cloudweave.domain.errors import PlanStateError
from cloudweave.domain.events.event_base import DomainEvent
from cloudweave.domain.events.plan_events import (
    PlanStarted,
    StepStarted,
    StepSucceeded,
    StepFailed,
    CompensationStarted,
    StepCompensated,
    CompensationFinished,
    PlanSucceeded,
)


class PlanStatus(Enum):
    PENDING = auto()
    RUNNING = auto()
    SUCCEEDED = auto()
    COMPENSATING = auto()
    COMPENSATION_SUCCEEDED = auto()
    COMPENSATION_FAILED = auto()


@dataclass(frozen=True)
class StepResult:
    value: Any = None


@dataclass(frozen=True)
class StepError:
    cause: BaseException


StepAction = Callable[[Mapping[str, Any]], Awaitable[Any]]
Compensation = Callable[[Any], Awaitable[Any]]


@dataclass(frozen=True)
class ProvisioningStep:
    """
    One atomic resource-creation action.

    ``action`` receives a read-only view of the results recorded by earlier
    steps and returns a StepResult, a StepError, a JobHandle to be awaited,
    or a bare value. ``compensate`` receives this step's recorded result.
    A step with ``depends_on_prior_success=False`` is best-effort.
    """
    name: str
    action: StepAction
    compensate: Optional[Compensation] = None
    depends_on_prior_success: bool = True
    timeout: Optional[float] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("ProvisioningStep name cannot be empty")

    @property
    def is_best_effort(self) -> bool:
        return not self.depends_on_prior_success


@dataclass(frozen=True)
class CompletedStep:
    step: ProvisioningStep
    index: int
    result: Any


class ProvisioningPlan:
    __slots__ = (
        "_plan_id",
        "_node_group",
        "_node_name",
        "_partition",
        "_steps",
        "_status",
        "_next_index",
        "_completed",
        "_results",
        "_best_effort_failures",
        "_failed_index",
        "_failure",
        "_compensation_errors",
        "_pending_events",
    )

    def __init__(
        self,
        node_group: str,
        node_name: str,
        steps: Sequence[ProvisioningStep],
        partition: Optional[str] = None,
        plan_id: Optional[str] = None,
    ) -> None:
        names = [s.name for s in steps]
        duplicates = {n for n in names if names.count(n) > 1}
        if duplicates:
            raise ValueError(f"Duplicate step names in plan: {sorted(duplicates)}")

        self._plan_id = plan_id or f"{node_name}-{uuid.uuid4().hex[:8]}"
        self._node_group = node_group
        self._node_name = node_name
        self._partition = partition or ""
        self._steps = tuple(steps)
        self._status = PlanStatus.PENDING
        self._next_index = 0
        self._completed: list[CompletedStep] = []
        self._results: dict[str, Any] = {}
        self._best_effort_failures: list[tuple[str, BaseException]] = []
        self._failed_index: Optional[int] = None
        self._failure: Optional[BaseException] = None
        self._compensation_errors: list[tuple[str, BaseException]] = []
        self._pending_events: list[DomainEvent] = []

    @property
    def plan_id(self) -> str:
        return self._plan_id

    @property
    def node_group(self) -> str:
        return self._node_group

    @property
    def node_name(self) -> str:
        return self._node_name

    @property
    def partition(self) -> str:
        return self._partition

    @property
    def steps(self) -> tuple[ProvisioningStep, ...]:
        return self._steps

    @property
    def status(self) -> PlanStatus:
        return self._status

    @property
    def completed_steps(self) -> tuple[CompletedStep, ...]:
        return tuple(self._completed)

    @property
    def results(self) -> Mapping[str, Any]:
        return MappingProxyType(self._results)

    @property
    def best_effort_failures(self) -> tuple[tuple[str, BaseException], ...]:
        return tuple(self._best_effort_failures)

    @property
    def failed_step_index(self) -> Optional[int]:
        return self._failed_index

    @property
    def failure(self) -> Optional[BaseException]:
        return self._failure

    @property
    def compensation_errors(self) -> tuple[tuple[str, BaseException], ...]:
        return tuple(self._compensation_errors)

    def _require(self, *allowed: PlanStatus) -> None:
        if self._status not in allowed:
            expected = " or ".join(s.name for s in allowed)
            raise PlanStateError(
                f"plan {self._plan_id} is {self._status.name}, expected {expected}"
            )

    def _emit(self, event: DomainEvent) -> None:
        self._pending_events.append(event.with_aggregate_id(self._plan_id))

    def pull_domain_events(self) -> list[DomainEvent]:
        events, self._pending_events = self._pending_events, []
        return events

    def start(self) -> None:
        self._require(PlanStatus.PENDING)
        self._status = PlanStatus.RUNNING
        self._emit(
            PlanStarted(
                node_name=self._node_name,
                partition=self._partition,
                step_count=len(self._steps),
            )
        )

    def begin_step(self, index: int) -> ProvisioningStep:
        self._require(PlanStatus.RUNNING)
        if index != self._next_index:
            raise PlanStateError(
                f"plan {self._plan_id} expected step {self._next_index}, got {index}"
            )
        step = self._steps[index]
        self._emit(StepStarted(step_name=step.name, step_index=index))
        return step

    def record_success(self, index: int, result: Any) -> None:
        self._require(PlanStatus.RUNNING)
        step = self._steps[index]
        self._completed.append(CompletedStep(step=step, index=index, result=result))
        self._results[step.name] = result
        self._next_index = index + 1
        self._emit(StepSucceeded(step_name=step.name, step_index=index))

    def record_best_effort_failure(self, index: int, error: BaseException) -> None:
        self._require(PlanStatus.RUNNING)
        step = self._steps[index]
        if not step.is_best_effort:
            raise PlanStateError(f"step {step.name} is not best-effort")
        self._best_effort_failures.append((step.name, error))
        self._next_index = index + 1
        self._emit(
            StepFailed(
                step_name=step.name,
                step_index=index,
                error_message=str(error),
                best_effort=True,
            )
        )

    def fail(self, index: int, error: BaseException) -> None:
        self._require(PlanStatus.RUNNING)
        step = self._steps[index]
        self._failed_index = index
        self._failure = error
        self._status = PlanStatus.COMPENSATING
        self._emit(
            StepFailed(step_name=step.name, step_index=index, error_message=str(error))
        )
        self._emit(
            CompensationStarted(
                failed_step_index=index, steps_to_compensate=len(self._completed)
            )
        )

    def pop_for_compensation(self) -> Optional[CompletedStep]:
        """Remove and return the most recently completed step, or None when unwound."""
        self._require(PlanStatus.COMPENSATING)
        if not self._completed:
            return None
        completed = self._completed.pop()
        self._results.pop(completed.step.name, None)
        return completed

    def record_compensation(
        self, completed: CompletedStep, error: Optional[BaseException] = None
    ) -> None:
        self._require(PlanStatus.COMPENSATING)
        if error is not None:
            self._compensation_errors.append((completed.step.name, error))
        self._emit(
            StepCompensated(
                step_name=completed.step.name,
                step_index=completed.index,
                success=error is None,
                error_message=str(error) if error is not None else "",
            )
        )

    def finish_compensation(self) -> None:
        self._require(PlanStatus.COMPENSATING)
        if self._completed:
            raise PlanStateError(
                f"plan {self._plan_id} still has {len(self._completed)} uncompensated steps"
            )
        success = not self._compensation_errors
        self._status = (
            PlanStatus.COMPENSATION_SUCCEEDED if success else PlanStatus.COMPENSATION_FAILED
        )
        self._emit(
            CompensationFinished(
                success=success, failure_count=len(self._compensation_errors)
            )
        )

    def succeed(self) -> None:
        self._require(PlanStatus.RUNNING)
        if self._next_index != len(self._steps):
            raise PlanStateError(
                f"plan {self._plan_id} finished after {self._next_index} of {len(self._steps)} steps"
            )
        self._status = PlanStatus.SUCCEEDED
        self._emit(PlanSucceeded(node_name=self._node_name))

    def __repr__(self) -> str:
        return (
            f"ProvisioningPlan(plan_id={self._plan_id}, node={self._node_group}/{self._node_name}, "
            f"status={self._status}, steps={len(self._steps)}, completed={len(self._completed)})"
        )
