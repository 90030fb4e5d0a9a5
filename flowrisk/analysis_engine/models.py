"""
Data models for the analysis engine.

Entity and attribute declarations, coupling edges, propagation events and
operation access records. All are frozen: definitions are write-once and
the event logs are append-only.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Union


class Sensitivity(str, Enum):
    SAFE = "safe"
    VULNERABLE = "vulnerable"


@dataclass(frozen=True)
class AttributeDef:
    """One declared attribute and its sensitivity classification."""

    name: str
    sensitivity: Sensitivity = Sensitivity.SAFE

    @property
    def is_vulnerable(self) -> bool:
        return self.sensitivity is Sensitivity.VULNERABLE

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "sensitivity": self.sensitivity.value}


def safe(name: str) -> AttributeDef:
    return AttributeDef(name, Sensitivity.SAFE)


def vulnerable(name: str) -> AttributeDef:
    return AttributeDef(name, Sensitivity.VULNERABLE)


@dataclass(frozen=True)
class EntityDef:
    """
    A registered entity with its full, flattened attribute list.

    Attribute order is the declaration order; names are unique (enforced
    by the schema registry at registration time).
    """

    name: str
    attributes: tuple[AttributeDef, ...]

    @property
    def attribute_names(self) -> tuple[str, ...]:
        return tuple(a.name for a in self.attributes)

    @property
    def vulnerable_count(self) -> int:
        return sum(1 for a in self.attributes if a.is_vulnerable)

    def attribute(self, name: str) -> AttributeDef | None:
        for attr in self.attributes:
            if attr.name == name:
                return attr
        return None

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "attributes": [a.to_dict() for a in self.attributes]}


@dataclass(frozen=True)
class AttributeTemplate:
    """
    Named, reusable group of attribute declarations.

    Role entities that share fields (e.g. credentials) list the template in
    compose_attributes(); the definitions are copied by value into each entity.
    """

    name: str
    attributes: tuple[AttributeDef, ...]


AttributePart = Union[AttributeDef, AttributeTemplate]


def compose_attributes(*parts: AttributePart | Iterable[AttributeDef]) -> tuple[AttributeDef, ...]:
    """Flatten templates, single attributes and iterables of attributes into one tuple."""
    out: list[AttributeDef] = []
    for part in parts:
        if isinstance(part, AttributeDef):
            out.append(part)
        elif isinstance(part, AttributeTemplate):
            out.extend(part.attributes)
        else:
            out.extend(part)
    return tuple(out)


# Fields every authenticated user role carries.
CREDENTIALS_TEMPLATE = AttributeTemplate(
    name="credentials",
    attributes=(vulnerable("AuthToken"), vulnerable("Password")),
)


@dataclass(frozen=True)
class CouplingEdge:
    """
    Directed coupling: ``source`` depends on ``target`` through ``operation``.

    copied_attributes are the attributes of ``source`` that cross the edge.
    Edges between the same ordered pair are never merged.
    """

    source: str
    target: str
    operation: str
    copied_attributes: frozenset[str] = frozenset()

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "target": self.target,
            "operation": self.operation,
            "copied_attributes": sorted(self.copied_attributes),
        }


@dataclass(frozen=True)
class PropagationEvent:
    """One copy of a sensitive attribute value into another entity's attribute."""

    sequence: int
    source_entity: str
    source_attribute: str
    dest_entity: str
    dest_attribute: str

    @property
    def source(self) -> tuple[str, str]:
        return (self.source_entity, self.source_attribute)

    @property
    def dest(self) -> tuple[str, str]:
        return (self.dest_entity, self.dest_attribute)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "source": f"{self.source_entity}.{self.source_attribute}",
            "dest": f"{self.dest_entity}.{self.dest_attribute}",
        }


@dataclass(frozen=True)
class OperationAccess:
    """Attributes touched by one reported invocation of an operation."""

    sequence: int
    entity: str
    operation: str
    attributes_accessed: frozenset[str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "sequence": self.sequence,
            "entity": self.entity,
            "operation": self.operation,
            "attributes_accessed": sorted(self.attributes_accessed),
        }
