"""
Provisioning Pipeline Module

Architectural Intent:
- Executes the ordered steps of one ProvisioningPlan
- Each step's action may finish immediately or hand back a JobHandle, which
  is resolved through the JobWaiter before the next step starts
- On the first critical failure the completed steps are compensated in
  reverse order and the original failure is raised as StepFailure
- Best-effort steps record their failure and never trigger compensation

Compensation Strategy:
- Every completed step is compensated at most once, newest first
- An asynchronous compensation is awaited like any other job
- A resource that is already gone counts as compensated
- Compensation errors are collected on the StepFailure and never stop the
  unwind or replace the original cause
"""

from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from cloudweave.application.orchestration.job_waiter import JobWaiter
from cloudweave.domain.entities.provisioning_plan import (
    CompletedStep,
    Compensation,
    ProvisioningPlan,
    ProvisioningStep,
    StepError,
    StepResult,
)
from cloudweave.domain.errors import (
    CompensationFailure,
    JobFailedError,
    ResourceNotFoundError,
    StepFailure,
)
from cloudweave.domain.ports.event_bus_port import EventBusPort
from cloudweave.domain.value_objects.job import Failed, JobHandle, Succeeded, TimedOut

logger = logging.getLogger(__name__)

StepOutcome = Union[StepResult, StepError]


def is_already_absent(error: BaseException) -> bool:
    if isinstance(error, ResourceNotFoundError):
        return True
    return isinstance(error, JobFailedError) and isinstance(error.cause, ResourceNotFoundError)


@dataclass(frozen=True)
class PlanResult:
    plan_id: str
    results: Mapping[str, Any]
    best_effort_failures: tuple[tuple[str, BaseException], ...] = ()

    def __getitem__(self, step_name: str) -> Any:
        return self.results[step_name]


class ProvisioningPipeline:
    def __init__(
        self,
        waiter: JobWaiter,
        event_bus: Optional[EventBusPort] = None,
        telemetry: Optional[Any] = None,
        compensation_timeout: Optional[float] = None,
    ) -> None:
        self._waiter = waiter
        self._event_bus = event_bus
        self._telemetry = telemetry
        self._compensation_timeout = compensation_timeout

    async def _publish(self, plan: ProvisioningPlan) -> None:
        events = plan.pull_domain_events()
        if self._event_bus and events:
            await self._event_bus.publish(events)

    @staticmethod
    def _extra(plan: ProvisioningPlan, event: str, step: ProvisioningStep, index: int) -> dict[str, Any]:
        return {
            "event": event,
            "plan_id": plan.plan_id,
            "node": plan.node_name,
            "step": step.name,
            "step_index": index,
        }

    async def _resolve(self, value: Any, timeout: Optional[float]) -> StepOutcome:
        if isinstance(value, (StepResult, StepError)):
            return value
        if not isinstance(value, JobHandle):
            return StepResult(value)

        outcome = await self._waiter.wait_for(value, timeout)
        if isinstance(outcome, Succeeded):
            return StepResult(outcome.result)
        if isinstance(outcome, Failed):
            return StepError(outcome.cause)
        if isinstance(outcome, TimedOut):
            return StepError(outcome.as_error())
        raise TypeError(f"Unexpected job outcome {outcome!r}")

    async def _run_action(self, step: ProvisioningStep, results: Mapping[str, Any]) -> StepOutcome:
        try:
            value = await step.action(results)
        except Exception as e:
            return StepError(e)
        return await self._resolve(value, step.timeout)

    async def _run_compensation(
        self, completed: CompletedStep, compensate: Compensation
    ) -> Optional[BaseException]:
        step = completed.step
        try:
            value = await compensate(completed.result)
            outcome = await self._resolve(value, self._compensation_timeout or step.timeout)
        except Exception as e:
            outcome = StepError(e)

        if isinstance(outcome, StepResult):
            return None
        if is_already_absent(outcome.cause):
            logger.debug("Step %s: resource already absent during compensation", step.name)
            return None
        return outcome.cause

    async def _compensate(self, plan: ProvisioningPlan) -> list[CompensationFailure]:
        failures: list[CompensationFailure] = []
        while True:
            completed = plan.pop_for_compensation()
            if completed is None:
                break
            step = completed.step
            compensate = step.compensate
            if compensate is None:
                plan.record_compensation(completed)
                continue

            error = await self._run_compensation(completed, compensate)
            plan.record_compensation(completed, error)
            if self._telemetry:
                self._telemetry.record_compensation(step.name, error is None)
            extra = self._extra(plan, "step_compensated", step, completed.index)
            if error is None:
                logger.info("Compensated step %d (%s)", completed.index, step.name, extra=extra)
            else:
                logger.error(
                    "Compensation of step %d (%s) failed: %s",
                    completed.index,
                    step.name,
                    error,
                    extra=extra,
                )
                failures.append(CompensationFailure(step.name, completed.index, error))
            await self._publish(plan)

        plan.finish_compensation()
        await self._publish(plan)
        return failures

    async def execute(self, plan: ProvisioningPlan) -> PlanResult:
        """
        Run every step of plan in order.

        Returns the per-step results on success. On a critical failure the
        plan is unwound and StepFailure is raised with the original cause and
        any compensation failures.
        """
        loop = asyncio.get_running_loop()
        plan.start()
        await self._publish(plan)
        span = (
            self._telemetry.start_span(
                "provision_plan", {"plan_id": plan.plan_id, "node": plan.node_name}
            )
            if self._telemetry
            else None
        )

        for index in range(len(plan.steps)):
            step = plan.begin_step(index)
            logger.info(
                "Step %d (%s) started",
                index,
                step.name,
                extra=self._extra(plan, "step_started", step, index),
            )
            await self._publish(plan)

            started = loop.time()
            outcome = await self._run_action(step, plan.results)
            duration_ms = (loop.time() - started) * 1000
            if self._telemetry:
                self._telemetry.record_step(
                    step.name, isinstance(outcome, StepResult), duration_ms
                )

            if isinstance(outcome, StepResult):
                plan.record_success(index, outcome.value)
                logger.info(
                    "Step %d (%s) succeeded in %.1fms",
                    index,
                    step.name,
                    duration_ms,
                    extra=self._extra(plan, "step_succeeded", step, index),
                )
            elif step.is_best_effort:
                plan.record_best_effort_failure(index, outcome.cause)
                logger.warning(
                    "Best-effort step %d (%s) failed: %s",
                    index,
                    step.name,
                    outcome.cause,
                    extra=self._extra(plan, "step_failed", step, index),
                )
            else:
                plan.fail(index, outcome.cause)
                logger.error(
                    "Step %d (%s) failed: %s; compensating %d completed steps",
                    index,
                    step.name,
                    outcome.cause,
                    len(plan.completed_steps),
                    extra=self._extra(plan, "step_failed", step, index),
                )
                await self._publish(plan)
                failures = await self._compensate(plan)
                failure = StepFailure(plan.plan_id, step.name, index, outcome.cause, failures)
                if self._telemetry:
                    self._telemetry.end_span(span, failure)
                raise failure from outcome.cause
            await self._publish(plan)

        plan.succeed()
        await self._publish(plan)
        if self._telemetry:
            self._telemetry.end_span(span)
        return PlanResult(
            plan_id=plan.plan_id,
            results=dict(plan.results),
            best_effort_failures=plan.best_effort_failures,
        )
