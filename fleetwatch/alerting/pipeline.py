"""Alerting pipeline — evaluate, deduplicate, dispatch for one sample."""

from __future__ import annotations

import time
from typing import Callable

import structlog

from fleetwatch.alerting.dedup import Deduplicator
from fleetwatch.alerting.dispatcher import AlertDispatcher
from fleetwatch.alerting.evaluator import Evaluator
from fleetwatch.alerting.types import (
    DispatchOutcome,
    OutcomeStatus,
    TelemetrySample,
    Violation,
)

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


class AlertingPipeline:
    """Runs Evaluator -> Deduplicator -> AlertDispatcher for a sample.

    Holds no state of its own; the deduplicator owns the cool-down records.
    The cool-down clock is monotonic so wall-clock steps cannot stretch a
    window. A run cancelled before fan-out starts leaves no dedup records.

    Usage::

        pipeline = AlertingPipeline(evaluator, deduplicator, dispatcher)
        outcome = await pipeline.process(sample)
    """

    def __init__(
        self,
        evaluator: Evaluator,
        deduplicator: Deduplicator,
        dispatcher: AlertDispatcher,
        clock: Clock = time.monotonic,
    ) -> None:
        self._evaluator = evaluator
        self._deduplicator = deduplicator
        self._dispatcher = dispatcher
        self._clock = clock

    @property
    def evaluator(self) -> Evaluator:
        return self._evaluator

    async def process(self, sample: TelemetrySample) -> DispatchOutcome:
        _, outcome = await self.process_with_violations(sample)
        return outcome

    async def process_with_violations(
        self, sample: TelemetrySample
    ) -> tuple[list[Violation], DispatchOutcome]:
        """Like process(), but also return every violation before dedup."""
        violations = self._evaluator.evaluate(sample)
        if not violations:
            return violations, DispatchOutcome(
                vessel_id=sample.vessel_id, status=OutcomeStatus.NO_VIOLATIONS
            )

        admission = await self._deduplicator.admit(violations, now=self._clock())
        survivors = admission.survivors
        logger.debug(
            "sample_evaluated",
            vessel_id=sample.vessel_id,
            violations=len(violations),
            suppressed=len(violations) - len(survivors),
        )
        if not survivors:
            return violations, DispatchOutcome(
                vessel_id=sample.vessel_id, status=OutcomeStatus.NO_VIOLATIONS
            )

        # Until fan-out starts nothing has been sent, so undo the admission.
        try:
            recipients = await self._dispatcher.eligible_recipients(sample.vessel_id)
        except BaseException:
            await self._deduplicator.rollback(admission)
            raise

        outcome = await self._dispatcher.deliver(
            sample.vessel_id, survivors, recipients, vessel_label=sample.label
        )
        return violations, outcome
