"""
Core utilities: the typed error taxonomy shared by the analysis stores,
the session facade and the CLI tools.
"""

from flowrisk.core.exceptions import (
    ConfigurationError,
    DuplicateAttribute,
    DuplicateEntity,
    EmptyAccess,
    EmptyEntity,
    FlowRiskError,
    NoAccessRecorded,
    QueryError,
    SelfCoupling,
    StructuralError,
    UnknownAttribute,
    UnknownEntity,
    UnknownReference,
)

__all__ = [
    "ConfigurationError",
    "DuplicateAttribute",
    "DuplicateEntity",
    "EmptyAccess",
    "EmptyEntity",
    "FlowRiskError",
    "NoAccessRecorded",
    "QueryError",
    "SelfCoupling",
    "StructuralError",
    "UnknownAttribute",
    "UnknownEntity",
    "UnknownReference",
]
