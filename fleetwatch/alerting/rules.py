"""Rule set — static thresholds indexed by signal name."""

from __future__ import annotations

import string
from collections.abc import Iterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from fleetwatch.alerting.exceptions import RuleConfigError
from fleetwatch.alerting.types import TEMPLATE_FIELDS, Rule

logger = structlog.get_logger(__name__)


class RuleSet:
    """Read-only collection of rules, looked up by signal name.

    Rules for a signal are returned in configuration order. Signals with no
    rules yield an empty tuple; unmonitored readings are simply ignored.
    """

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        self._rules: tuple[Rule, ...] = tuple(rules)
        by_signal: dict[str, list[Rule]] = {}
        for rule in self._rules:
            by_signal.setdefault(rule.signal, []).append(rule)
        self._by_signal: dict[str, tuple[Rule, ...]] = {
            signal: tuple(rules) for signal, rules in by_signal.items()
        }

    def rules_for(self, signal: str) -> tuple[Rule, ...]:
        return self._by_signal.get(signal, ())

    @property
    def signals(self) -> frozenset[str]:
        return frozenset(self._by_signal)

    def __iter__(self):
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


def _check_template(rule: Rule) -> None:
    try:
        fields = [name for _, name, _, _ in string.Formatter().parse(rule.message) if name]
    except ValueError as exc:
        raise RuleConfigError(f"rule {rule.id!r}: bad message template: {exc}") from exc

    unknown = sorted({f for f in fields if f not in TEMPLATE_FIELDS})
    if unknown:
        raise RuleConfigError(
            f"rule {rule.id!r}: unknown template placeholder(s) {', '.join(unknown)}"
        )

    # Catches format specs that only fail at render time.
    try:
        rule.render(vessel_id="v", engine_id="1", observed=rule.threshold)
    except (ValueError, IndexError, KeyError) as exc:
        raise RuleConfigError(f"rule {rule.id!r}: bad message template: {exc}") from exc


def build_rule_set(raw_rules: Iterable[Mapping[str, Any] | Rule]) -> RuleSet:
    """Validate configured rules and build a RuleSet.

    Raises:
        RuleConfigError: On invalid fields, duplicate rule ids, or a message
            template the renderer cannot fill.
    """
    rules: list[Rule] = []
    seen: set[str] = set()

    for index, raw in enumerate(raw_rules):
        if isinstance(raw, Rule):
            rule = raw
        else:
            if not isinstance(raw, Mapping):
                raise RuleConfigError(f"rule #{index}: expected a mapping, got {type(raw).__name__}")
            try:
                rule = Rule.model_validate(dict(raw))
            except ValidationError as exc:
                raise RuleConfigError(f"rule #{index}: {exc}") from exc

        if rule.id in seen:
            raise RuleConfigError(f"duplicate rule id {rule.id!r}")
        seen.add(rule.id)

        _check_template(rule)
        rules.append(rule)

    rule_set = RuleSet(rules)
    logger.info(
        "rule_set_loaded",
        rules=len(rule_set),
        signals=sorted(rule_set.signals),
    )
    return rule_set
