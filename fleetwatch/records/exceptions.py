"""Record storage exceptions."""

from __future__ import annotations


class RecordError(Exception):
    """Base exception for record storage errors."""


class RecordNotFoundError(RecordError):
    """No record with the requested id exists."""

    def __init__(self, kind: str, record_id: str) -> None:
        super().__init__(f"{kind} {record_id!r} not found")
        self.kind = kind
        self.record_id = record_id
