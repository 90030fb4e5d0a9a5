"""
Metric computation: AVR, VCC, CIVPF and VA.

All metrics are pure functions over a ModelSnapshot, an immutable copy of
the four stores taken under their read locks (registry -> graph -> tracer ->
access log). Ratios are exact Fractions; callers round only for display.

MetricsCalculator is the query-side convenience: each call takes a fresh
snapshot and evaluates one metric against it.
"""

from __future__ import annotations

from contextlib import ExitStack
from dataclasses import dataclass
from fractions import Fraction
from functools import cached_property
from typing import Any, Callable, Mapping

from flowrisk.analysis_engine.access_log import OperationAccessLog, latest_accesses
from flowrisk.analysis_engine.coupling_graph import CouplingGraph, coupled_pairs, distinct_neighbors
from flowrisk.analysis_engine.models import (
    CouplingEdge,
    EntityDef,
    OperationAccess,
    PropagationEvent,
)
from flowrisk.analysis_engine.propagation import ChainIndex, PropagationChain, PropagationTracer
from flowrisk.analysis_engine.schema_registry import (
    SchemaRegistry,
    entity_avr,
    require_attribute,
    require_entity,
)
from flowrisk.core.exceptions import NoAccessRecorded

DEFAULT_CRITICAL_THRESHOLD = Fraction(1, 2)
"""VA at or above this marks an operation critical: half or more of what it touches is sensitive."""


def to_ratio(value: Fraction | float | int) -> Fraction:
    """
    Exact Fraction for a score or threshold.

    Floats go through their shortest decimal repr so 0.2 means 1/5, not the
    nearest binary double. Raises ValueError for NaN and infinities.
    """
    if isinstance(value, Fraction):
        return value
    if isinstance(value, bool):
        raise TypeError("bool is not a ratio")
    if isinstance(value, int):
        return Fraction(value)
    return Fraction(str(float(value)))


@dataclass(frozen=True)
class ModelSnapshot:
    """Immutable, mutually consistent copy of registry, graph, tracer and access log."""

    entities: tuple[EntityDef, ...]
    edges: tuple[CouplingEdge, ...]
    events: tuple[PropagationEvent, ...]
    accesses: tuple[OperationAccess, ...]

    @cached_property
    def entity_map(self) -> Mapping[str, EntityDef]:
        return {e.name: e for e in self.entities}

    @cached_property
    def chain_index(self) -> ChainIndex:
        return ChainIndex(self.events)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entities": [e.to_dict() for e in self.entities],
            "couplings": [e.to_dict() for e in self.edges],
            "propagations": [e.to_dict() for e in self.events],
            "accesses": [a.to_dict() for a in self.accesses],
        }


def take_snapshot(
    registry: SchemaRegistry,
    graph: CouplingGraph,
    tracer: PropagationTracer,
    access_log: OperationAccessLog,
) -> ModelSnapshot:
    """Hold every read lock (fixed order), copy, release."""
    with ExitStack() as stack:
        for lock in (registry.lock, graph.lock, tracer.lock, access_log.lock):
            stack.enter_context(lock.read_locked())
        return ModelSnapshot(
            entities=tuple(registry.copy_unlocked().values()),
            edges=tuple(graph.copy_unlocked()),
            events=tuple(tracer.copy_unlocked()),
            accesses=tuple(access_log.copy_unlocked()),
        )


@dataclass(frozen=True)
class OperationScore:
    """VA of the most recent invocation of one operation."""

    entity: str
    operation: str
    accessed: int
    vulnerable_accessed: int

    @property
    def va(self) -> Fraction:
        return Fraction(self.vulnerable_accessed, self.accessed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "entity": self.entity,
            "operation": self.operation,
            "accessed": self.accessed,
            "vulnerable_accessed": self.vulnerable_accessed,
            "va": round(float(self.va), 4),
        }


# --- AVR ---


def attribute_vulnerability_ratio(snapshot: ModelSnapshot, entity: str) -> Fraction:
    return entity_avr(require_entity(snapshot.entity_map, entity))


def system_attribute_vulnerability_ratio(snapshot: ModelSnapshot) -> Fraction:
    """Attribute-weighted: sum(vulnerable) / sum(attributes) over all entities; 0 when empty."""
    total = sum(len(e.attributes) for e in snapshot.entities)
    if total == 0:
        return Fraction(0)
    return Fraction(sum(e.vulnerable_count for e in snapshot.entities), total)


# --- VCC ---


def vulnerability_coupling_count(snapshot: ModelSnapshot, entity: str) -> int:
    require_entity(snapshot.entity_map, entity)
    return len(distinct_neighbors(snapshot.edges, entity))


def system_vulnerability_coupling_count(snapshot: ModelSnapshot) -> int:
    return len(coupled_pairs(snapshot.edges))


# --- CIVPF ---


def longest_chain_from(snapshot: ModelSnapshot, entity: str, attribute: str) -> int:
    require_attribute(snapshot.entity_map, entity, attribute)
    return snapshot.chain_index.chain_from((entity, attribute)).hops


def max_propagation_depth(snapshot: ModelSnapshot) -> int:
    return snapshot.chain_index.max_hops()


def propagation_chains(snapshot: ModelSnapshot) -> tuple[PropagationChain, ...]:
    """Longest chain per origin, origins in order of first propagation."""
    return snapshot.chain_index.chains()


# --- VA ---


def _score(entity: EntityDef, record: OperationAccess) -> OperationScore:
    vulnerable_names = {a.name for a in entity.attributes if a.is_vulnerable}
    return OperationScore(
        entity=record.entity,
        operation=record.operation,
        accessed=len(record.attributes_accessed),
        vulnerable_accessed=len(record.attributes_accessed & vulnerable_names),
    )


def operation_vulnerability_amplification(snapshot: ModelSnapshot, entity: str, operation: str) -> Fraction:
    """
    VA of the most recent access record for (entity, operation).

    Raises:
        UnknownEntity: entity is not registered.
        NoAccessRecorded: the operation has never been reported.
    """
    entity_def = require_entity(snapshot.entity_map, entity)
    record = latest_accesses(snapshot.accesses).get((entity, operation))
    if record is None:
        raise NoAccessRecorded(entity, operation)
    return _score(entity_def, record).va


def operation_scores(snapshot: ModelSnapshot) -> tuple[OperationScore, ...]:
    entities = snapshot.entity_map
    return tuple(
        _score(entities[entity], record)
        for (entity, _), record in latest_accesses(snapshot.accesses).items()
    )


def critical_operations(
    snapshot: ModelSnapshot,
    threshold: Fraction | float = DEFAULT_CRITICAL_THRESHOLD,
) -> frozenset[tuple[str, str]]:
    """(entity, operation) pairs whose VA is >= threshold."""
    limit = to_ratio(threshold)
    return frozenset((s.entity, s.operation) for s in operation_scores(snapshot) if s.va >= limit)


class MetricsCalculator:
    """
    Query facade over a snapshot provider.

    Args:
        snapshot_provider: Callable returning a consistent ModelSnapshot,
            usually AnalysisSession.snapshot.
    """

    def __init__(self, snapshot_provider: Callable[[], ModelSnapshot]) -> None:
        self._snapshot = snapshot_provider

    def attribute_vulnerability_ratio(self, entity: str) -> Fraction:
        return attribute_vulnerability_ratio(self._snapshot(), entity)

    def system_attribute_vulnerability_ratio(self) -> Fraction:
        return system_attribute_vulnerability_ratio(self._snapshot())

    def vulnerability_coupling_count(self, entity: str) -> int:
        return vulnerability_coupling_count(self._snapshot(), entity)

    def system_vulnerability_coupling_count(self) -> int:
        return system_vulnerability_coupling_count(self._snapshot())

    def longest_chain_from(self, entity: str, attribute: str) -> int:
        return longest_chain_from(self._snapshot(), entity, attribute)

    def max_propagation_depth(self) -> int:
        return max_propagation_depth(self._snapshot())

    def operation_vulnerability_amplification(self, entity: str, operation: str) -> Fraction:
        return operation_vulnerability_amplification(self._snapshot(), entity, operation)

    def operation_scores(self) -> tuple[OperationScore, ...]:
        return operation_scores(self._snapshot())

    def critical_operations(
        self, threshold: Fraction | float = DEFAULT_CRITICAL_THRESHOLD
    ) -> frozenset[tuple[str, str]]:
        return critical_operations(self._snapshot(), threshold)
