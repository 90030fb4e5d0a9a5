"""
Operation access log: which attributes each reported operation invocation touched.

Feeds Vulnerability Amplification only. Records are append-only; the most
recent record for an (entity, operation) pair is the one that is scored.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from flowrisk.analysis_engine.locks import ReadWriteLock
from flowrisk.analysis_engine.models import OperationAccess
from flowrisk.analysis_engine.schema_registry import SchemaRegistry, require_attribute, require_entity
from flowrisk.core.exceptions import EmptyAccess


def latest_accesses(records: Iterable[OperationAccess]) -> dict[tuple[str, str], OperationAccess]:
    """Most recent record per (entity, operation), keyed in order of first appearance."""
    out: dict[tuple[str, str], OperationAccess] = {}
    for record in sorted(records, key=lambda r: r.sequence):
        out[(record.entity, record.operation)] = record
    return out


class OperationAccessLog:
    def __init__(self, registry: SchemaRegistry) -> None:
        self.lock = ReadWriteLock()
        self._registry = registry
        self._records: list[OperationAccess] = []
        self._next_sequence = 1

    def record_operation_access(
        self,
        entity: str,
        operation: str,
        attributes_accessed: Iterable[str],
    ) -> OperationAccess:
        """
        Append one invocation record.

        Raises:
            UnknownEntity: entity is not registered.
            EmptyAccess: no attributes were accessed.
            UnknownAttribute: an accessed attribute is not declared on entity.
        """
        accessed = frozenset(attributes_accessed)
        with self._registry.lock.read_locked():
            entities = self._registry.view_unlocked()
            require_entity(entities, entity)
            if not accessed:
                raise EmptyAccess(entity, operation)
            for attribute in sorted(accessed):
                require_attribute(entities, entity, attribute)
            with self.lock.write_locked():
                record = OperationAccess(
                    sequence=self._next_sequence,
                    entity=entity,
                    operation=operation,
                    attributes_accessed=accessed,
                )
                self._records.append(record)
                self._next_sequence += 1
        return record

    def latest(self, entity: str, operation: str) -> OperationAccess | None:
        with self.lock.read_locked():
            for record in reversed(self._records):
                if record.entity == entity and record.operation == operation:
                    return record
        return None

    def records(self) -> tuple[OperationAccess, ...]:
        with self.lock.read_locked():
            return tuple(self._records)

    def __len__(self) -> int:
        with self.lock.read_locked():
            return len(self._records)

    def copy_unlocked(self) -> Sequence[OperationAccess]:
        return tuple(self._records)

    def clear_unlocked(self) -> None:
        self._records.clear()
        self._next_sequence = 1
