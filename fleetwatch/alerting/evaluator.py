"""Evaluator — applies the rule set to a telemetry sample."""

from __future__ import annotations

from fleetwatch.alerting.rules import RuleSet
from fleetwatch.alerting.types import TelemetrySample, Violation


class Evaluator:
    """Pure, stateless rule evaluation.

    Every rule whose threshold is breached fires independently, so a reading
    can produce both a "low" and a "critical-low" violation for one signal.
    Picking the worst one is left to the layers downstream.
    """

    def __init__(self, rule_set: RuleSet) -> None:
        self._rule_set = rule_set

    @property
    def rule_set(self) -> RuleSet:
        return self._rule_set

    def evaluate(self, sample: TelemetrySample) -> list[Violation]:
        """Return violations in engine, then signal, then rule order."""
        violations: list[Violation] = []
        for reading in sample.readings:
            for signal, observed in reading.signals.items():
                # Absent values are skipped, never read as zero.
                if observed is None:
                    continue
                for rule in self._rule_set.rules_for(signal):
                    if rule.breached_by(observed):
                        violations.append(
                            Violation(
                                vessel_id=sample.vessel_id,
                                engine_id=reading.engine_id,
                                rule=rule,
                                observed=observed,
                                timestamp=sample.timestamp,
                            )
                        )
        return violations
