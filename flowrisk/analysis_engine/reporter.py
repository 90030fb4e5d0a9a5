"""
Risk reporter: tier classification and the immutable report snapshot.

classify() maps a ratio in [0, 1] to GOOD / MODERATE / POOR.
build_report() is a pure function of a ModelSnapshot: it never touches the
stores, so two reports built from the same state compare equal.
Verbosity is an explicit ReportOptions value chosen by the caller at build time.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any

from flowrisk.analysis_engine.metrics import (
    DEFAULT_CRITICAL_THRESHOLD,
    ModelSnapshot,
    OperationScore,
    attribute_vulnerability_ratio,
    critical_operations,
    max_propagation_depth,
    operation_scores,
    propagation_chains,
    system_attribute_vulnerability_ratio,
    system_vulnerability_coupling_count,
    to_ratio,
    vulnerability_coupling_count,
)
from flowrisk.analysis_engine.propagation import PropagationChain


class RiskTier(str, Enum):
    GOOD = "good"
    MODERATE = "moderate"
    POOR = "poor"


@dataclass(frozen=True)
class TierThresholds:
    """Lower bounds (inclusive) of the MODERATE and POOR tiers."""

    moderate: Fraction = Fraction(1, 5)
    poor: Fraction = Fraction(1, 2)

    @classmethod
    def from_floats(cls, moderate: float, poor: float) -> TierThresholds:
        return cls(moderate=to_ratio(moderate), poor=to_ratio(poor))


DEFAULT_TIERS = TierThresholds()


def classify(score: Fraction | float | int, thresholds: TierThresholds = DEFAULT_TIERS) -> RiskTier:
    """
    score < 0.20 -> GOOD, 0.20 <= score < 0.50 -> MODERATE, score >= 0.50 -> POOR.

    Raises:
        ValueError: score is NaN or outside [0, 1].
    """
    ratio = to_ratio(score)
    if not 0 <= ratio <= 1:
        raise ValueError(f"score must be within [0, 1], got {score!r}")
    if ratio >= thresholds.poor:
        return RiskTier.POOR
    if ratio >= thresholds.moderate:
        return RiskTier.MODERATE
    return RiskTier.GOOD


@dataclass(frozen=True)
class ReportOptions:
    verbose: bool = False
    """Include per-operation VA scores and the longest chain per origin."""
    critical_threshold: Fraction = DEFAULT_CRITICAL_THRESHOLD
    thresholds: TierThresholds = DEFAULT_TIERS

    @classmethod
    def from_settings(cls, settings: Any) -> ReportOptions:
        """Build options from flowrisk.config.Settings."""
        return cls(
            verbose=settings.verbose_report,
            critical_threshold=to_ratio(settings.critical_va_threshold),
            thresholds=TierThresholds.from_floats(settings.moderate_threshold, settings.poor_threshold),
        )


@dataclass(frozen=True)
class EntityRisk:
    name: str
    avr: Fraction
    vcc: int
    tier: RiskTier

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "avr": round(float(self.avr), 4),
            "vcc": self.vcc,
            "tier": self.tier.value,
        }


@dataclass(frozen=True)
class RiskReport:
    """
    One consistent view of every metric.

    critical_operations is sorted; operations and chains are populated only
    for verbose reports.
    """

    entities: tuple[EntityRisk, ...]
    system_avr: Fraction
    system_avr_tier: RiskTier
    system_vcc: int
    max_civpf: int
    critical_operations: tuple[tuple[str, str], ...]
    critical_threshold: Fraction
    verbose: bool = False
    operations: tuple[OperationScore, ...] = ()
    chains: tuple[PropagationChain, ...] = ()

    @property
    def critical_set(self) -> frozenset[tuple[str, str]]:
        return frozenset(self.critical_operations)

    def entity(self, name: str) -> EntityRisk | None:
        for risk in self.entities:
            if risk.name == name:
                return risk
        return None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "entities": [e.to_dict() for e in self.entities],
            "system": {
                "avr": round(float(self.system_avr), 4),
                "avr_tier": self.system_avr_tier.value,
                "vcc": self.system_vcc,
                "max_civpf": self.max_civpf,
            },
            "critical_threshold": round(float(self.critical_threshold), 4),
            "critical_operations": [
                {"entity": entity, "operation": operation}
                for entity, operation in self.critical_operations
            ],
        }
        if self.verbose:
            out["operations"] = [s.to_dict() for s in self.operations]
            out["chains"] = [c.to_dict() for c in self.chains]
        return out


def build_report(snapshot: ModelSnapshot, options: ReportOptions | None = None) -> RiskReport:
    """Assemble a RiskReport from a snapshot. Pure; never mutates anything."""
    options = options or ReportOptions()
    entities: list[EntityRisk] = []
    for e in snapshot.entities:
        avr = attribute_vulnerability_ratio(snapshot, e.name)
        entities.append(
            EntityRisk(
                name=e.name,
                avr=avr,
                vcc=vulnerability_coupling_count(snapshot, e.name),
                tier=classify(avr, options.thresholds),
            )
        )
    system_avr = system_attribute_vulnerability_ratio(snapshot)
    return RiskReport(
        entities=tuple(entities),
        system_avr=system_avr,
        system_avr_tier=classify(system_avr, options.thresholds),
        system_vcc=system_vulnerability_coupling_count(snapshot),
        max_civpf=max_propagation_depth(snapshot),
        critical_operations=tuple(sorted(critical_operations(snapshot, options.critical_threshold))),
        critical_threshold=options.critical_threshold,
        verbose=options.verbose,
        operations=operation_scores(snapshot) if options.verbose else (),
        chains=propagation_chains(snapshot) if options.verbose else (),
    )


_TIER_LABEL = {
    RiskTier.GOOD: "GOOD",
    RiskTier.MODERATE: "MODERATE",
    RiskTier.POOR: "POOR",
}


def render_table(report: RiskReport) -> str:
    """Console summary table: one row per entity, then the system rows."""
    sep = "---------------------|-------|-----|---------"
    lines = [
        "Entity               | AVR   | VCC | Status",
        sep,
    ]
    for e in report.entities:
        lines.append(f"{e.name:<20} | {float(e.avr):<5.2f} | {e.vcc:<3} | {_TIER_LABEL[e.tier]}")
    lines.append(sep)
    lines.append(
        f"{'System AVR':<20} | {float(report.system_avr):<5.2f} |     | {_TIER_LABEL[report.system_avr_tier]}"
    )
    lines.append(f"{'System VCC':<20} |       | {report.system_vcc:<3} |")
    lines.append(f"{'Max CIVPF Path':<20} |       | {report.max_civpf:<3} |")
    lines.append("")
    count = len(report.critical_operations)
    lines.append(
        f"Critical VA operations (>={float(report.critical_threshold):.2f}): "
        f"{count} operation{'s' if count != 1 else ''}"
    )
    for entity, operation in report.critical_operations:
        lines.append(f"  - {entity}.{operation}")
    if report.verbose:
        lines.append("")
        lines.append("Operation VA:")
        for s in report.operations:
            lines.append(f"  {s.entity}.{s.operation}: {s.vulnerable_accessed}/{s.accessed} = {float(s.va):.2f}")
        lines.append("Propagation chains:")
        for c in report.chains:
            lines.append(f"  {c.hops} hop(s): " + " -> ".join(f"{e}.{a}" for e, a in c.path))
    return "\n".join(lines)
