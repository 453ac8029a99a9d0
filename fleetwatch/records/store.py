"""In-memory record storage."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

import structlog

from fleetwatch.records.exceptions import RecordNotFoundError
from fleetwatch.records.models import MonitoringReport, Port, Record, SupplyOrder, User, Vessel

logger = structlog.get_logger(__name__)

R = TypeVar("R", bound=Record)

# Assigned by the store; never taken from an update payload.
_PROTECTED_FIELDS = frozenset({"id", "created_at"})


class RecordStore(Generic[R]):
    """Keeps records of one type keyed by a generated hex id.

    Iteration order is creation order, so ``newest_first`` needs no sort.
    """

    def __init__(self, model: type[R]) -> None:
        self._model = model
        self._records: dict[str, R] = {}

    @property
    def kind(self) -> str:
        return self._model.__name__

    def create(self, record: R) -> R:
        stored = record.model_copy(update={"id": uuid.uuid4().hex})
        self._records[stored.id] = stored
        logger.debug("record_created", kind=self.kind, record_id=stored.id)
        return stored

    def get(self, record_id: str) -> R:
        try:
            return self._records[record_id]
        except KeyError:
            raise RecordNotFoundError(self.kind, record_id) from None

    def find(self, record_id: str) -> R | None:
        return self._records.get(record_id)

    def list(
        self,
        predicate: Callable[[R], bool] | None = None,
        newest_first: bool = False,
        limit: int | None = None,
    ) -> list[R]:
        records = list(self._records.values())
        if newest_first:
            records.reverse()
        if predicate is not None:
            records = [r for r in records if predicate(r)]
        if limit is not None:
            records = records[: max(limit, 0)]
        return records

    def latest(self, predicate: Callable[[R], bool] | None = None) -> R | None:
        found = self.list(predicate, newest_first=True, limit=1)
        return found[0] if found else None

    def update(self, record_id: str, changes: Mapping[str, Any]) -> R:
        """Apply snake_case *changes* and re-validate the whole record.

        Raises:
            RecordNotFoundError: If *record_id* is unknown.
            pydantic.ValidationError: If the result is not a valid record.
        """
        current = self.get(record_id)
        data = current.model_dump()
        data.update({k: v for k, v in changes.items() if k not in _PROTECTED_FIELDS})
        updated = self._model.model_validate(data)
        self._records[record_id] = updated
        return updated

    def delete(self, record_id: str) -> None:
        if self._records.pop(record_id, None) is None:
            raise RecordNotFoundError(self.kind, record_id)

    def __len__(self) -> int:
        return len(self._records)


class FleetRegistry:
    """One store per record type."""

    def __init__(self) -> None:
        self.vessels: RecordStore[Vessel] = RecordStore(Vessel)
        self.ports: RecordStore[Port] = RecordStore(Port)
        self.reports: RecordStore[MonitoringReport] = RecordStore(MonitoringReport)
        self.orders: RecordStore[SupplyOrder] = RecordStore(SupplyOrder)
        self.users: RecordStore[User] = RecordStore(User)
