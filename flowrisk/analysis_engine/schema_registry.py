"""
Schema registry: entity definitions and per-attribute sensitivity.

Entities are registered once with their full attribute list and are
immutable afterwards. Registration is atomic: a rejected call leaves the
registry exactly as it was.
"""

from __future__ import annotations

from fractions import Fraction
from types import MappingProxyType
from typing import Iterable, Mapping

from flowrisk.analysis_engine.locks import ReadWriteLock
from flowrisk.analysis_engine.models import AttributeDef, EntityDef, Sensitivity
from flowrisk.core.exceptions import (
    DuplicateAttribute,
    DuplicateEntity,
    EmptyEntity,
    UnknownAttribute,
    UnknownEntity,
)


def entity_avr(entity: EntityDef) -> Fraction:
    """AVR = vulnerable attributes / declared attributes (never empty, see register_entity)."""
    return Fraction(entity.vulnerable_count, len(entity.attributes))


def require_entity(entities: Mapping[str, EntityDef], name: str) -> EntityDef:
    entity = entities.get(name)
    if entity is None:
        raise UnknownEntity(name)
    return entity


def require_attribute(entities: Mapping[str, EntityDef], entity_name: str, attribute: str) -> AttributeDef:
    attr = require_entity(entities, entity_name).attribute(attribute)
    if attr is None:
        raise UnknownAttribute(entity_name, attribute)
    return attr


class SchemaRegistry:
    """Holds EntityDefs keyed by name, in registration order."""

    def __init__(self) -> None:
        self.lock = ReadWriteLock()
        self._entities: dict[str, EntityDef] = {}

    def register_entity(self, name: str, attributes: Iterable[AttributeDef]) -> EntityDef:
        """
        Register an entity with its flattened attribute list.
        Checks run in the order listed below, under the write lock.

        Raises:
            DuplicateEntity: name is already registered.
            EmptyEntity: attributes is empty.
            DuplicateAttribute: two attributes share a name.
        """
        attrs = tuple(attributes)
        with self.lock.write_locked():
            if name in self._entities:
                raise DuplicateEntity(name)
            if not attrs:
                raise EmptyEntity(name)
            seen: set[str] = set()
            for attr in attrs:
                if attr.name in seen:
                    raise DuplicateAttribute(name, attr.name)
                seen.add(attr.name)
            entity = EntityDef(name=name, attributes=attrs)
            self._entities[name] = entity
        return entity

    def sensitivity(self, entity: str, attribute: str) -> Sensitivity:
        with self.lock.read_locked():
            return require_attribute(self._entities, entity, attribute).sensitivity

    def attribute_vulnerability_ratio(self, entity: str) -> Fraction:
        with self.lock.read_locked():
            return entity_avr(require_entity(self._entities, entity))

    def get_entity(self, name: str) -> EntityDef:
        with self.lock.read_locked():
            return require_entity(self._entities, name)

    def has_entity(self, name: str) -> bool:
        with self.lock.read_locked():
            return name in self._entities

    def entity_names(self) -> tuple[str, ...]:
        with self.lock.read_locked():
            return tuple(self._entities)

    def vulnerable_attributes(self, entity: str) -> tuple[str, ...]:
        with self.lock.read_locked():
            return tuple(
                a.name for a in require_entity(self._entities, entity).attributes if a.is_vulnerable
            )

    def __len__(self) -> int:
        with self.lock.read_locked():
            return len(self._entities)

    # Callers must hold self.lock for the methods below (write lock for clear_unlocked).

    def view_unlocked(self) -> Mapping[str, EntityDef]:
        """Read-only live view of the entity table."""
        return MappingProxyType(self._entities)

    def copy_unlocked(self) -> Mapping[str, EntityDef]:
        return MappingProxyType(dict(self._entities))

    def clear_unlocked(self) -> None:
        self._entities.clear()
