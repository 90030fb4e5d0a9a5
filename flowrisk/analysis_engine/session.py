"""
Analysis session: one isolated analysis run.

Owns its own schema registry, coupling graph, propagation tracer and
operation access log; nothing is shared between sessions. Boundary
operations return an OperationResult instead of raising, so callers
branch on ``result.ok`` / ``result.status``. Rejected operations are logged
here for operators; the stores themselves stay silent.
"""

from __future__ import annotations

import uuid
from contextlib import ExitStack
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable

from flowrisk.analysis_engine.access_log import OperationAccessLog
from flowrisk.analysis_engine.coupling_graph import CouplingGraph
from flowrisk.analysis_engine.metrics import MetricsCalculator, ModelSnapshot, take_snapshot
from flowrisk.analysis_engine.models import AttributeDef
from flowrisk.analysis_engine.propagation import PropagationTracer
from flowrisk.analysis_engine.reporter import ReportOptions, RiskReport, build_report
from flowrisk.analysis_engine.schema_registry import SchemaRegistry
from flowrisk.core.exceptions import FlowRiskError
from flowrisk.risk_logging import bind_session


class ResultStatus(str, Enum):
    SUCCESS = "success"
    NOOP = "noop"
    ERROR = "error"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one boundary operation: the created record, a no-op, or a typed error."""

    status: ResultStatus
    value: Any = None
    error: FlowRiskError | None = None

    @property
    def ok(self) -> bool:
        return self.status is not ResultStatus.ERROR

    @property
    def error_code(self) -> str | None:
        return self.error.code if self.error is not None else None

    def unwrap(self) -> Any:
        """Return value, or raise the captured error."""
        if self.error is not None:
            raise self.error
        return self.value

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"status": self.status.value}
        if self.error is not None:
            out["error"] = self.error.to_dict()
        return out


class AnalysisSession:
    """
    Accumulate-then-query model of one analysed system.

    Usage:
        session = AnalysisSession()
        session.register_entity("PatientRecord", [safe("PatientID"), vulnerable("SSN")])
        session.record_operation_access("PatientRecord", "GetSSN", ["SSN"])
        report = session.build_report()
    """

    def __init__(self, options: ReportOptions | None = None, session_id: str | None = None) -> None:
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.options = options or ReportOptions()
        self.registry = SchemaRegistry()
        self.graph = CouplingGraph(self.registry)
        self.tracer = PropagationTracer(self.registry)
        self.access_log = OperationAccessLog(self.registry)
        self.metrics = MetricsCalculator(self.snapshot)
        self._logger = bind_session(self.session_id)

    def _run(self, operation: str, call: Callable[[], Any], **context: Any) -> OperationResult:
        try:
            value = call()
        except FlowRiskError as e:
            self._logger.warning(
                "operation_rejected",
                operation=operation,
                error_code=e.code,
                error=e.message,
                **context,
            )
            return OperationResult(ResultStatus.ERROR, error=e)
        if value is None:
            self._logger.debug("operation_noop", operation=operation, **context)
            return OperationResult(ResultStatus.NOOP)
        self._logger.debug("operation_applied", operation=operation, **context)
        return OperationResult(ResultStatus.SUCCESS, value=value)

    # --- Boundary operations ---

    def register_entity(self, name: str, attributes: Iterable[AttributeDef]) -> OperationResult:
        attrs = tuple(attributes)
        return self._run(
            "register_entity",
            lambda: self.registry.register_entity(name, attrs),
            entity=name,
            attribute_count=len(attrs),
        )

    def add_coupling(
        self,
        source: str,
        target: str,
        operation: str,
        copied_attributes: Iterable[str] = (),
    ) -> OperationResult:
        copied = frozenset(copied_attributes)
        return self._run(
            "add_coupling",
            lambda: self.graph.add_coupling(source, target, operation, copied),
            source=source,
            target=target,
            via=operation,
        )

    def record_propagation(
        self,
        source_entity: str,
        source_attribute: str,
        dest_entity: str,
        dest_attribute: str,
    ) -> OperationResult:
        return self._run(
            "record_propagation",
            lambda: self.tracer.record_propagation(
                source_entity, source_attribute, dest_entity, dest_attribute
            ),
            source=f"{source_entity}.{source_attribute}",
            dest=f"{dest_entity}.{dest_attribute}",
        )

    def record_operation_access(
        self,
        entity: str,
        operation: str,
        attributes_accessed: Iterable[str],
    ) -> OperationResult:
        accessed = frozenset(attributes_accessed)
        return self._run(
            "record_operation_access",
            lambda: self.access_log.record_operation_access(entity, operation, accessed),
            entity=entity,
            via=operation,
            accessed_count=len(accessed),
        )

    # --- Queries ---

    def snapshot(self) -> ModelSnapshot:
        return take_snapshot(self.registry, self.graph, self.tracer, self.access_log)

    def build_report(self, options: ReportOptions | None = None) -> RiskReport:
        """Report over one consistent snapshot. ``options`` overrides the session defaults."""
        report = build_report(self.snapshot(), options or self.options)
        self._logger.info(
            "report_built",
            entity_count=len(report.entities),
            system_vcc=report.system_vcc,
            max_civpf=report.max_civpf,
            critical_count=len(report.critical_operations),
        )
        return report

    def reset(self) -> None:
        """Clear all four stores atomically; sequence numbers restart at 1."""
        stores = (self.registry, self.graph, self.tracer, self.access_log)
        with ExitStack() as stack:
            for store in stores:
                stack.enter_context(store.lock.write_locked())
            for store in stores:
                store.clear_unlocked()
        self._logger.info("session_reset")
