"""Ordered forward steps with best-effort compensation.

Blob-store and record-store writes cannot share a transaction. A saga
runs each step in turn; when one fails, the compensations of the steps
that already completed run in reverse order and the original error is
re-raised. A failed compensation is logged and never retried.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from ..logging import get_context_logger, log_compensation

logger = get_context_logger(__name__)

StepAction = Callable[[], Awaitable[Any]]


@dataclass
class SagaStep:
    """A forward action and the action that undoes it."""

    name: str
    action: StepAction
    compensation: StepAction | None = None


@dataclass
class Saga:
    """A short sequence of steps executed with compensating rollback.

    Usage:
        saga = Saga("assign", identifiers={"report_id": report_id})
        saga.step("create_assignment", insert, compensation=delete)
        saga.step("merge_content", update)
        results = await saga.run()
    """

    operation: str
    identifiers: dict[str, Any] = field(default_factory=dict)
    steps: list[SagaStep] = field(default_factory=list)

    def step(
        self,
        name: str,
        action: StepAction,
        compensation: StepAction | None = None,
    ) -> "Saga":
        self.steps.append(SagaStep(name, action, compensation))
        return self

    async def run(self) -> list[Any]:
        """Execute all steps in order.

        Returns:
            The result of each step, in order

        Raises:
            Exception: Whatever the failing step raised, after compensation
        """
        completed: list[SagaStep] = []
        results: list[Any] = []

        for step in self.steps:
            try:
                results.append(await step.action())
            except Exception as e:
                logger.warning(
                    f"{self.operation}: step {step.name} failed: {e}",
                    extra={"operation": self.operation, "step": step.name, **self.identifiers},
                )
                await self._compensate(completed)
                raise
            completed.append(step)

        return results

    async def _compensate(self, completed: list[SagaStep]) -> None:
        for step in reversed(completed):
            if step.compensation is None:
                continue
            try:
                await step.compensation()
            except Exception as e:
                log_compensation(
                    self.operation, step.name, succeeded=False, error=str(e), **self.identifiers
                )
            else:
                log_compensation(self.operation, step.name, succeeded=True, **self.identifiers)
