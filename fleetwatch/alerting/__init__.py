"""Critical-condition alerting — rules, evaluation, dedup, dispatch."""

from fleetwatch.alerting.channels import DeliveryChannel, FonnteChannel, LogChannel
from fleetwatch.alerting.dedup import Admission, Deduplicator, DedupStore, InMemoryDedupStore
from fleetwatch.alerting.dispatcher import AlertDispatcher
from fleetwatch.alerting.evaluator import Evaluator
from fleetwatch.alerting.exceptions import AlertingError, RuleConfigError
from fleetwatch.alerting.factory import create_alerting_stack, create_channel
from fleetwatch.alerting.formatters import format_violation_batch
from fleetwatch.alerting.pipeline import AlertingPipeline
from fleetwatch.alerting.rules import RuleSet, build_rule_set
from fleetwatch.alerting.types import (
    Comparison,
    DedupKey,
    DeliveryReceipt,
    DeliveryResult,
    DispatchOutcome,
    EngineReading,
    OutcomeStatus,
    Recipient,
    RecipientDirectory,
    Rule,
    TelemetrySample,
    Violation,
)

__all__ = [
    "Admission",
    "AlertDispatcher",
    "AlertingError",
    "AlertingPipeline",
    "Comparison",
    "DedupKey",
    "DedupStore",
    "Deduplicator",
    "DeliveryChannel",
    "DeliveryReceipt",
    "DeliveryResult",
    "DispatchOutcome",
    "EngineReading",
    "Evaluator",
    "FonnteChannel",
    "InMemoryDedupStore",
    "LogChannel",
    "OutcomeStatus",
    "Recipient",
    "RecipientDirectory",
    "Rule",
    "RuleConfigError",
    "RuleSet",
    "TelemetrySample",
    "Violation",
    "build_rule_set",
    "create_alerting_stack",
    "create_channel",
    "format_violation_batch",
]
