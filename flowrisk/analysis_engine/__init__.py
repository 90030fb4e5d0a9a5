"""
Analysis engine package: sensitive-data-flow risk scoring.

Classifies entity attributes, tracks couplings and sensitive-value copies
between entities, records which attributes each operation touches, and
derives AVR, VCC, CIVPF and VA from them into a risk-tiered report.
"""

from flowrisk.analysis_engine.models import (
    CREDENTIALS_TEMPLATE,
    AttributeDef,
    AttributeTemplate,
    CouplingEdge,
    EntityDef,
    OperationAccess,
    PropagationEvent,
    Sensitivity,
    compose_attributes,
    safe,
    vulnerable,
)
from flowrisk.analysis_engine.schema_registry import SchemaRegistry
from flowrisk.analysis_engine.coupling_graph import CouplingGraph
from flowrisk.analysis_engine.propagation import ChainIndex, PropagationChain, PropagationTracer
from flowrisk.analysis_engine.access_log import OperationAccessLog
from flowrisk.analysis_engine.metrics import (
    MetricsCalculator,
    ModelSnapshot,
    OperationScore,
)
from flowrisk.analysis_engine.reporter import (
    EntityRisk,
    ReportOptions,
    RiskReport,
    RiskTier,
    TierThresholds,
    build_report,
    classify,
    render_table,
)
from flowrisk.analysis_engine.session import (
    AnalysisSession,
    OperationResult,
    ResultStatus,
)

__all__ = [
    "CREDENTIALS_TEMPLATE",
    "AttributeDef",
    "AttributeTemplate",
    "CouplingEdge",
    "EntityDef",
    "OperationAccess",
    "PropagationEvent",
    "Sensitivity",
    "compose_attributes",
    "safe",
    "vulnerable",
    "SchemaRegistry",
    "CouplingGraph",
    "ChainIndex",
    "PropagationChain",
    "PropagationTracer",
    "OperationAccessLog",
    "MetricsCalculator",
    "ModelSnapshot",
    "OperationScore",
    "EntityRisk",
    "ReportOptions",
    "RiskReport",
    "RiskTier",
    "TierThresholds",
    "build_report",
    "classify",
    "render_table",
    "AnalysisSession",
    "OperationResult",
    "ResultStatus",
]
