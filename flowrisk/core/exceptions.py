"""
Application-level exceptions.

Every error is local to the call that raised it and leaves previously
accumulated state untouched. Each class carries a stable ``code`` used by
OperationResult and by log events.
"""

from __future__ import annotations

from typing import Any


class FlowRiskError(Exception):
    """Base exception for flowrisk errors."""

    code = "flowrisk_error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": dict(self.details)}


# --- Configuration errors: raised during schema setup ---


class ConfigurationError(FlowRiskError):
    """Caller programming mistake while declaring the model."""

    code = "configuration_error"


class DuplicateEntity(ConfigurationError):
    """Raised when an entity name is registered twice."""

    code = "duplicate_entity"

    def __init__(self, entity: str):
        super().__init__(f"Entity already registered: {entity}", {"entity": entity})
        self.entity = entity


class DuplicateAttribute(ConfigurationError):
    """Raised when an entity declares the same attribute name twice."""

    code = "duplicate_attribute"

    def __init__(self, entity: str, attribute: str):
        super().__init__(
            f"Attribute declared twice on {entity}: {attribute}",
            {"entity": entity, "attribute": attribute},
        )
        self.entity = entity
        self.attribute = attribute


class EmptyEntity(ConfigurationError):
    """Raised when an entity is registered without attributes."""

    code = "empty_entity"

    def __init__(self, entity: str):
        super().__init__(f"Entity has no attributes: {entity}", {"entity": entity})
        self.entity = entity


class EmptyAccess(ConfigurationError):
    """Raised when an operation access touches no attributes."""

    code = "empty_access"

    def __init__(self, entity: str, operation: str):
        super().__init__(
            f"Access record for {entity}.{operation} touches no attributes",
            {"entity": entity, "operation": operation},
        )
        self.entity = entity
        self.operation = operation


# --- Reference errors: a name that was never registered ---


class UnknownReference(FlowRiskError):
    """A call referenced a name that is not registered. Register it and retry."""

    code = "unknown_reference"


class UnknownEntity(UnknownReference):
    """Raised when an entity name was never registered."""

    code = "unknown_entity"

    def __init__(self, entity: str):
        super().__init__(f"Unknown entity: {entity}", {"entity": entity})
        self.entity = entity


class UnknownAttribute(UnknownReference):
    """Raised when an entity does not declare the named attribute."""

    code = "unknown_attribute"

    def __init__(self, entity: str, attribute: str):
        super().__init__(
            f"Unknown attribute on {entity}: {attribute}",
            {"entity": entity, "attribute": attribute},
        )
        self.entity = entity
        self.attribute = attribute


# --- Structural errors ---


class StructuralError(FlowRiskError):
    """The reported coupling cannot exist in the model."""

    code = "structural_error"


class SelfCoupling(StructuralError):
    """Raised when an entity is coupled to itself."""

    code = "self_coupling"

    def __init__(self, entity: str, operation: str):
        super().__init__(
            f"Entity cannot be coupled to itself: {entity} via {operation}",
            {"entity": entity, "operation": operation},
        )
        self.entity = entity
        self.operation = operation


# --- Query errors ---


class QueryError(FlowRiskError):
    """A metric was requested for data that was never reported."""

    code = "query_error"


class NoAccessRecorded(QueryError):
    """Raised when VA is requested for an operation without any reported access."""

    code = "no_access_recorded"

    def __init__(self, entity: str, operation: str):
        super().__init__(
            f"No access recorded for {entity}.{operation}",
            {"entity": entity, "operation": operation},
        )
        self.entity = entity
        self.operation = operation
