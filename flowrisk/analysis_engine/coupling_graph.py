"""
Entity coupling graph: directed multigraph of "A is coupled to B" edges.

Each edge records the operation that created the dependency and the source
attributes copied across it. Repeated operations between the same pair are
kept as separate edges, but VCC counts distinct neighbours only, so they do
not inflate coupling beyond the fact that two entities are coupled.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from flowrisk.analysis_engine.locks import ReadWriteLock
from flowrisk.analysis_engine.models import CouplingEdge, EntityDef
from flowrisk.analysis_engine.schema_registry import SchemaRegistry, require_attribute, require_entity
from flowrisk.core.exceptions import SelfCoupling


def distinct_neighbors(edges: Iterable[CouplingEdge], entity: str) -> frozenset[str]:
    """Entities one edge away from ``entity`` in either direction."""
    out: set[str] = set()
    for edge in edges:
        if edge.source == entity:
            out.add(edge.target)
        elif edge.target == entity:
            out.add(edge.source)
    return frozenset(out)


def coupled_pairs(edges: Iterable[CouplingEdge]) -> frozenset[frozenset[str]]:
    """Unordered entity pairs joined by at least one edge."""
    return frozenset(frozenset((e.source, e.target)) for e in edges)


def validate_coupling(
    entities: Mapping[str, EntityDef],
    source: str,
    target: str,
    operation: str,
    copied_attributes: Iterable[str],
) -> CouplingEdge:
    """Build an edge after checking endpoints and copied attributes; raises on invalid input."""
    require_entity(entities, source)
    require_entity(entities, target)
    if source == target:
        raise SelfCoupling(source, operation)
    copied = frozenset(copied_attributes)
    for attribute in sorted(copied):
        require_attribute(entities, source, attribute)
    return CouplingEdge(source=source, target=target, operation=operation, copied_attributes=copied)


class CouplingGraph:
    """Append-only edge log with distinct-neighbour coupling counts."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self.lock = ReadWriteLock()
        self._registry = registry
        self._edges: list[CouplingEdge] = []

    def add_coupling(
        self,
        source: str,
        target: str,
        operation: str,
        copied_attributes: Iterable[str] = (),
    ) -> CouplingEdge:
        """
        Record that ``source`` depends on ``target`` via ``operation``.

        Raises:
            UnknownEntity: either endpoint is not registered.
            SelfCoupling: source == target.
            UnknownAttribute: a copied attribute is not declared on source.
        """
        with self._registry.lock.read_locked():
            edge = validate_coupling(
                self._registry.view_unlocked(), source, target, operation, copied_attributes
            )
            with self.lock.write_locked():
                self._edges.append(edge)
        return edge

    def vulnerability_coupling_count(self, entity: str) -> int:
        with self._registry.lock.read_locked():
            require_entity(self._registry.view_unlocked(), entity)
            with self.lock.read_locked():
                return len(distinct_neighbors(self._edges, entity))

    def system_vulnerability_coupling_count(self) -> int:
        with self.lock.read_locked():
            return len(coupled_pairs(self._edges))

    def neighbors(self, entity: str) -> frozenset[str]:
        with self.lock.read_locked():
            return distinct_neighbors(self._edges, entity)

    def edges(self) -> tuple[CouplingEdge, ...]:
        with self.lock.read_locked():
            return tuple(self._edges)

    def edges_between(self, a: str, b: str) -> tuple[CouplingEdge, ...]:
        """All edges joining a and b, in either direction, in insertion order."""
        pair = {a, b}
        with self.lock.read_locked():
            return tuple(e for e in self._edges if {e.source, e.target} == pair)

    def __len__(self) -> int:
        with self.lock.read_locked():
            return len(self._edges)

    def copy_unlocked(self) -> Sequence[CouplingEdge]:
        return tuple(self._edges)

    def clear_unlocked(self) -> None:
        self._edges.clear()
