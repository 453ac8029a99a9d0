"""Convenience factory for wiring the alerting stack."""

from __future__ import annotations

from fleetwatch.alerting.channels import DeliveryChannel, FonnteChannel, LogChannel
from fleetwatch.alerting.dedup import Deduplicator, DedupStore
from fleetwatch.alerting.dispatcher import AlertDispatcher
from fleetwatch.alerting.evaluator import Evaluator
from fleetwatch.alerting.pipeline import AlertingPipeline
from fleetwatch.alerting.rules import build_rule_set
from fleetwatch.alerting.types import RecipientDirectory
from fleetwatch.core.config import FonnteConfig, Settings


def create_channel(config: FonnteConfig) -> DeliveryChannel:
    """Fonnte when enabled, otherwise messages only go to the log."""
    if config.enabled:
        return FonnteChannel(config)
    return LogChannel()


def create_alerting_stack(
    settings: Settings,
    directory: RecipientDirectory,
    channel: DeliveryChannel | None = None,
    store: DedupStore | None = None,
) -> tuple[AlertingPipeline, DeliveryChannel]:
    """Build a pipeline and its delivery channel from settings.

    Raises:
        RuleConfigError: If the configured rules are malformed.

    Returns:
        (pipeline, channel). The caller owns closing the channel.
    """
    alerting = settings.alerting
    rule_set = build_rule_set(alerting.rules)

    if channel is None:
        channel = create_channel(settings.fonnte)

    dispatcher = AlertDispatcher(
        directory=directory,
        channel=channel,
        eligible_roles=alerting.eligible_roles,
        delivery_timeout_secs=alerting.delivery_timeout_secs,
    )
    pipeline = AlertingPipeline(
        evaluator=Evaluator(rule_set),
        deduplicator=Deduplicator(store=store, cooldown_secs=alerting.cooldown_secs),
        dispatcher=dispatcher,
    )
    return pipeline, channel
