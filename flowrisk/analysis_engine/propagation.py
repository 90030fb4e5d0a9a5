"""
Propagation tracer: sensitive attribute copies and the chains they form.

Every recorded event copies a VULNERABLE attribute value into another
entity's attribute. Events form a directed multigraph over
(entity, attribute) nodes; a chain follows events in sequence order until
it reaches a node that is never propagated further (a sink) or would revisit
a node already on the walk (cycles are truncated).

Copies of SAFE attributes are accepted and ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Sequence

from flowrisk.analysis_engine.locks import ReadWriteLock
from flowrisk.analysis_engine.models import PropagationEvent
from flowrisk.analysis_engine.schema_registry import SchemaRegistry, require_attribute

Node = tuple[str, str]
"""(entity, attribute)"""


@dataclass(frozen=True)
class PropagationChain:
    """Longest chain found from one origin: hop count plus the nodes walked."""

    origin: Node
    path: tuple[Node, ...]

    @property
    def hops(self) -> int:
        return len(self.path) - 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "origin": f"{self.origin[0]}.{self.origin[1]}",
            "hops": self.hops,
            "path": [f"{entity}.{attribute}" for entity, attribute in self.path],
        }


def index_outgoing(events: Iterable[PropagationEvent]) -> dict[Node, list[PropagationEvent]]:
    """Group events by source node, each list in sequence order."""
    out: dict[Node, list[PropagationEvent]] = {}
    for event in sorted(events, key=lambda e: e.sequence):
        out.setdefault(event.source, []).append(event)
    return out


def origins_of(events: Iterable[PropagationEvent]) -> tuple[Node, ...]:
    """Distinct source nodes in order of first appearance."""
    seen: dict[Node, None] = {}
    for event in sorted(events, key=lambda e: e.sequence):
        seen.setdefault(event.source, None)
    return tuple(seen)


def cyclic_groups(outgoing: Mapping[Node, Sequence[PropagationEvent]]) -> dict[Node, int]:
    """
    Group id for every node that lies on a cycle of propagation events.

    Iterative Tarjan over the node graph; nodes outside any cycle are left out.
    """
    adjacency: dict[Node, list[Node]] = {}
    for node, events in outgoing.items():
        adjacency.setdefault(node, [])
        for event in events:
            adjacency[node].append(event.dest)
            adjacency.setdefault(event.dest, [])

    index: dict[Node, int] = {}
    low: dict[Node, int] = {}
    stack: list[Node] = []
    on_stack: set[Node] = set()
    groups: list[list[Node]] = []

    for root in adjacency:
        if root in index:
            continue
        index[root] = low[root] = len(index)
        stack.append(root)
        on_stack.add(root)
        work = [(root, iter(adjacency[root]))]
        while work:
            node, successors = work[-1]
            descended = False
            for succ in successors:
                if succ not in index:
                    index[succ] = low[succ] = len(index)
                    stack.append(succ)
                    on_stack.add(succ)
                    work.append((succ, iter(adjacency[succ])))
                    descended = True
                    break
                if succ in on_stack:
                    low[node] = min(low[node], index[succ])
            if descended:
                continue
            work.pop()
            if work:
                parent = work[-1][0]
                low[parent] = min(low[parent], low[node])
            if low[node] == index[node]:
                members: list[Node] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    members.append(member)
                    if member == node:
                        break
                groups.append(members)

    out: dict[Node, int] = {}
    for group_id, members in enumerate(groups):
        node = members[0]
        if len(members) > 1 or node in adjacency[node]:
            for member in members:
                out[member] = group_id
    return out


# (hops including the event itself, nodes walked inside the destination's group, exit event)
_Tail = tuple[int, tuple[Node, ...], PropagationEvent | None]


class ChainIndex:
    """
    Longest chain from every node, computed in one pass over the events.

    From a node reached through event e, only events with sequence >= e.sequence
    are followed, and a node already on the walk is never re-entered. Ties keep
    the first chain found when exploring in sequence order.

    Events are processed in reverse sequence order, so every later event's best
    continuation is already known when an event is reached. Outside cycles a
    walk can never revisit a node and the best continuation is memoised per
    node. Only inside a cyclic group can a walk come back to a node; there the
    walk tracks the group's nodes it has visited and leaves the group through
    exit events whose continuations are already memoised.
    """

    def __init__(self, events: Iterable[PropagationEvent]) -> None:
        ordered = sorted(events, key=lambda e: e.sequence)
        self._outgoing = index_outgoing(ordered)
        self._origins = origins_of(ordered)
        self._groups = cyclic_groups(self._outgoing)
        self._tails: dict[PropagationEvent, _Tail] = {}
        # Acyclic node -> (hops, first event) over the events processed so far.
        self._node_best: dict[Node, tuple[int, PropagationEvent]] = {}
        for event in reversed(ordered):
            if self._is_internal(event):
                continue
            tail = self._tail_of(event)
            self._tails[event] = tail
            if event.source not in self._groups:
                current = self._node_best.get(event.source)
                # >= keeps the lowest sequence among equally long continuations.
                if current is None or tail[0] >= current[0]:
                    self._node_best[event.source] = (tail[0], event)
        self._chains = {origin: self._walk(origin) for origin in self._origins}

    @property
    def origins(self) -> tuple[Node, ...]:
        return self._origins

    def chain_from(self, origin: Node) -> PropagationChain:
        chain = self._chains.get(origin)
        if chain is None:
            # Never a source: nothing leaves this node.
            chain = PropagationChain(origin=origin, path=(origin,))
        return chain

    def chains(self) -> tuple[PropagationChain, ...]:
        """Longest chain per origin, origins in order of first propagation."""
        return tuple(self._chains[origin] for origin in self._origins)

    def max_hops(self) -> int:
        return max((chain.hops for chain in self._chains.values()), default=0)

    def _is_internal(self, event: PropagationEvent) -> bool:
        group = self._groups.get(event.source)
        return group is not None and self._groups.get(event.dest) == group

    def _tail_of(self, event: PropagationEvent) -> _Tail:
        dest = event.dest
        if dest in self._groups:
            hops, path, exit_event = self._search_group(dest, event.sequence)
            return 1 + hops, path[1:], exit_event
        best = self._node_best.get(dest)
        if best is None:
            return 1, (), None
        return 1 + best[0], (), best[1]

    def _search_group(
        self, start: Node, min_sequence: int
    ) -> tuple[int, tuple[Node, ...], PropagationEvent | None]:
        """Depth-first walk inside start's cyclic group; exits count their memoised tails."""
        group = self._groups[start]
        best: tuple[int, tuple[Node, ...], PropagationEvent | None] = (0, (start,), None)
        # (node, min_sequence, nodes walked in the group, exit event or None)
        stack: list[tuple[Node, int, tuple[Node, ...], PropagationEvent | None]] = [
            (start, min_sequence, (start,), None)
        ]
        while stack:
            node, min_seq, path, exit_event = stack.pop()
            hops = len(path) - 1
            if exit_event is not None:
                hops += self._tails[exit_event][0]
            if hops > best[0]:
                best = (hops, path, exit_event)
            if exit_event is not None:
                continue
            candidates: list[tuple[Node, int, tuple[Node, ...], PropagationEvent | None]] = []
            for event in self._outgoing.get(node, ()):
                if event.sequence < min_seq:
                    continue
                if self._groups.get(event.dest) != group:
                    candidates.append((node, event.sequence, path, event))
                elif event.dest not in path:
                    candidates.append((event.dest, event.sequence, path + (event.dest,), None))
            stack.extend(reversed(candidates))
        return best

    def _walk(self, origin: Node) -> PropagationChain:
        if origin in self._groups:
            _, inner, exit_event = self._search_group(origin, 0)
            path = list(inner)
        else:
            path = [origin]
            best = self._node_best.get(origin)
            exit_event = best[1] if best is not None else None
        while exit_event is not None:
            path.append(exit_event.dest)
            _, inner, exit_event = self._tails[exit_event]
            path.extend(inner)
        return PropagationChain(origin=origin, path=tuple(path))


def longest_chain(events: Iterable[PropagationEvent], origin: Node) -> PropagationChain:
    return ChainIndex(events).chain_from(origin)


def max_depth(events: Iterable[PropagationEvent]) -> int:
    """System-wide CIVPF: the longest chain over every origin; 0 without events."""
    return ChainIndex(events).max_hops()


class PropagationTracer:
    """Append-only log of PropagationEvents with chain queries."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self.lock = ReadWriteLock()
        self._registry = registry
        self._events: list[PropagationEvent] = []
        self._next_sequence = 1

    def record_propagation(
        self,
        source_entity: str,
        source_attribute: str,
        dest_entity: str,
        dest_attribute: str,
    ) -> PropagationEvent | None:
        """
        Record a copy of source_entity.source_attribute into dest_entity.dest_attribute.

        Returns the new event, or None when the source attribute is SAFE
        (accepted, not tracked).

        Raises:
            UnknownEntity / UnknownAttribute: either endpoint is not registered.
        """
        with self._registry.lock.read_locked():
            entities = self._registry.view_unlocked()
            source = require_attribute(entities, source_entity, source_attribute)
            require_attribute(entities, dest_entity, dest_attribute)
            if not source.is_vulnerable:
                return None
            with self.lock.write_locked():
                event = PropagationEvent(
                    sequence=self._next_sequence,
                    source_entity=source_entity,
                    source_attribute=source_attribute,
                    dest_entity=dest_entity,
                    dest_attribute=dest_attribute,
                )
                self._events.append(event)
                self._next_sequence += 1
        return event

    def longest_chain_from(self, entity: str, attribute: str) -> int:
        return self.longest_path_from(entity, attribute).hops

    def longest_path_from(self, entity: str, attribute: str) -> PropagationChain:
        with self._registry.lock.read_locked():
            require_attribute(self._registry.view_unlocked(), entity, attribute)
            with self.lock.read_locked():
                events = tuple(self._events)
        # Computed after both locks are released.
        return longest_chain(events, (entity, attribute))

    def max_propagation_depth(self) -> int:
        return max_depth(self.events())

    def origins(self) -> tuple[Node, ...]:
        with self.lock.read_locked():
            return origins_of(self._events)

    def events(self) -> tuple[PropagationEvent, ...]:
        with self.lock.read_locked():
            return tuple(self._events)

    def __len__(self) -> int:
        with self.lock.read_locked():
            return len(self._events)

    def copy_unlocked(self) -> Sequence[PropagationEvent]:
        return tuple(self._events)

    def clear_unlocked(self) -> None:
        self._events.clear()
        self._next_sequence = 1
