"""
Tests for the metrics calculator: VA, system AVR weighting, critical operations.
"""

from __future__ import annotations

from fractions import Fraction

import pytest

from flowrisk.analysis_engine import AnalysisSession, safe, vulnerable
from flowrisk.analysis_engine.metrics import to_ratio
from flowrisk.core.exceptions import EmptyAccess, NoAccessRecorded, UnknownAttribute, UnknownEntity


def test_va_half_of_accessed_is_vulnerable(clinic_session):
    """Access of 4 attributes, 2 vulnerable -> VA exactly 0.5."""
    clinic_session.access_log.record_operation_access(
        "PatientRecord", "Summary", {"PatientID", "FullName", "SSN", "DOB"}
    )
    va = clinic_session.metrics.operation_vulnerability_amplification("PatientRecord", "Summary")
    assert va == Fraction(1, 2)


def test_va_without_access_fails(clinic_session):
    with pytest.raises(NoAccessRecorded) as exc:
        clinic_session.metrics.operation_vulnerability_amplification("PatientRecord", "Export")
    assert exc.value.code == "no_access_recorded"


def test_va_unknown_entity(clinic_session):
    with pytest.raises(UnknownEntity):
        clinic_session.metrics.operation_vulnerability_amplification("Nurse", "Export")


def test_va_uses_most_recent_record(clinic_session):
    log = clinic_session.access_log
    log.record_operation_access("PatientRecord", "Export", {"SSN"})
    log.record_operation_access("PatientRecord", "Export", {"PatientID", "SSN", "FullName"})
    assert clinic_session.metrics.operation_vulnerability_amplification("PatientRecord", "Export") == Fraction(1, 3)
    assert log.latest("PatientRecord", "Export").sequence == 2
    assert [r.sequence for r in log.records()] == [1, 2]
    assert log.latest("PatientRecord", "Missing") is None


def test_access_validation(clinic_session):
    log = clinic_session.access_log
    with pytest.raises(UnknownEntity):
        log.record_operation_access("Nurse", "Read", {"Name"})
    with pytest.raises(UnknownAttribute):
        log.record_operation_access("PatientRecord", "Read", {"SSN", "Email"})
    with pytest.raises(EmptyAccess):
        log.record_operation_access("PatientRecord", "Noop", set())
    assert len(log) == 0


def test_system_avr_is_weighted_by_attribute_count():
    """(1 + 0) / (1 + 5), not the mean of 1.0 and 0.0."""
    session = AnalysisSession()
    session.register_entity("Tiny", [vulnerable("secret")]).unwrap()
    session.register_entity("Wide", [safe(f"f{i}") for i in range(5)]).unwrap()
    assert session.metrics.system_attribute_vulnerability_ratio() == Fraction(1, 6)


def test_system_avr_empty_session(session):
    assert session.metrics.system_attribute_vulnerability_ratio() == 0


def test_critical_operations_default_threshold(clinic_session):
    log = clinic_session.access_log
    log.record_operation_access("PatientRecord", "GetSSN", {"SSN"})
    log.record_operation_access("PatientRecord", "Summary", {"PatientID", "FullName", "SSN", "DOB"})
    log.record_operation_access("PatientRecord", "GetBasicInfo", {"PatientID", "FullName"})
    log.record_operation_access("Prescription", "Audit", {"PrescriptionID", "PatientID", "DrugCost"})
    assert clinic_session.metrics.critical_operations() == frozenset(
        {("PatientRecord", "GetSSN"), ("PatientRecord", "Summary")}
    )


def test_critical_operations_custom_threshold(clinic_session):
    log = clinic_session.access_log
    log.record_operation_access("PatientRecord", "GetSSN", {"SSN"})
    log.record_operation_access("PatientRecord", "Summary", {"PatientID", "FullName", "SSN", "DOB"})
    log.record_operation_access("Prescription", "Audit", {"PrescriptionID", "PatientID", "DrugCost"})
    assert clinic_session.metrics.critical_operations(0.75) == frozenset({("PatientRecord", "GetSSN")})
    assert len(clinic_session.metrics.critical_operations(0.0)) == 3


def test_operation_scores_in_first_seen_order(clinic_session):
    log = clinic_session.access_log
    log.record_operation_access("Doctor", "GetAuthToken", {"AuthToken"})
    log.record_operation_access("PatientRecord", "GetBasicInfo", {"PatientID"})
    log.record_operation_access("Doctor", "GetAuthToken", {"AuthToken", "DoctorID"})
    scores = clinic_session.metrics.operation_scores()
    assert [(s.entity, s.operation) for s in scores] == [
        ("Doctor", "GetAuthToken"),
        ("PatientRecord", "GetBasicInfo"),
    ]
    assert scores[0].va == Fraction(1, 2)
    assert scores[0].to_dict()["va"] == 0.5


def test_calculator_pass_through_metrics(clinic_session):
    clinic_session.graph.add_coupling("Prescription", "PatientRecord", "Create")
    clinic_session.tracer.record_propagation("PatientRecord", "SSN", "Prescription", "RawPatientSSN")
    metrics = clinic_session.metrics
    assert metrics.attribute_vulnerability_ratio("PatientRecord") == Fraction(2, 3)
    assert metrics.vulnerability_coupling_count("Prescription") == 1
    assert metrics.system_vulnerability_coupling_count() == 1
    assert metrics.longest_chain_from("PatientRecord", "SSN") == 1
    assert metrics.max_propagation_depth() == 1


def test_to_ratio_uses_decimal_value_of_floats():
    assert to_ratio(0.2) == Fraction(1, 5)
    assert to_ratio(1) == Fraction(1)
    with pytest.raises(ValueError):
        to_ratio(float("nan"))
