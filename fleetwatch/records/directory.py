"""User directory — resolves alert recipients from stored users."""

from __future__ import annotations

from fleetwatch.alerting.types import Recipient
from fleetwatch.records.store import FleetRegistry


class UserDirectory:
    """Maps users assigned to a vessel onto alert recipients.

    Role filtering is left to the dispatcher; every assigned user is returned.
    """

    def __init__(self, registry: FleetRegistry) -> None:
        self._registry = registry

    async def resolve_recipients(self, vessel_id: str) -> list[Recipient]:
        return [
            Recipient(
                id=user.id,
                address=user.whatsapp_number,
                role=user.role.value,
                vessel_id=user.vessel_id,
            )
            for user in self._registry.users.list(lambda u: u.vessel_id == vessel_id)
        ]
