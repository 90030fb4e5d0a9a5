"""
Tests for the propagation tracer: safe-source no-ops, chain length, cycle
truncation and sequence ordering.
"""

from __future__ import annotations

import time

import pytest

from flowrisk.analysis_engine import AnalysisSession, ReportOptions, safe, vulnerable
from flowrisk.core.exceptions import UnknownAttribute, UnknownEntity


def test_two_hop_chain(clinic_session):
    """SSN -> Prescription.RawPatientSSN -> PrescriptionDTO.PatientSSN is a 2-hop chain."""
    tracer = clinic_session.tracer
    first = tracer.record_propagation("PatientRecord", "SSN", "Prescription", "RawPatientSSN")
    second = tracer.record_propagation("Prescription", "RawPatientSSN", "PrescriptionDTO", "PatientSSN")
    assert (first.sequence, second.sequence) == (1, 2)
    assert tracer.longest_chain_from("PatientRecord", "SSN") == 2
    assert tracer.longest_chain_from("Prescription", "RawPatientSSN") == 1
    assert tracer.max_propagation_depth() == 2
    chain = tracer.longest_path_from("PatientRecord", "SSN")
    assert chain.path == (
        ("PatientRecord", "SSN"),
        ("Prescription", "RawPatientSSN"),
        ("PrescriptionDTO", "PatientSSN"),
    )
    assert chain.to_dict()["path"][-1] == "PrescriptionDTO.PatientSSN"


def test_safe_source_is_noop(clinic_session):
    """A copy of a SAFE attribute is accepted but not tracked."""
    tracer = clinic_session.tracer
    assert tracer.record_propagation("PatientRecord", "FullName", "PharmacyOrder", "PatientName") is None
    assert len(tracer) == 0
    assert tracer.max_propagation_depth() == 0
    assert tracer.origins() == ()


def test_safe_copy_does_not_change_depth(clinic_session):
    tracer = clinic_session.tracer
    tracer.record_propagation("PatientRecord", "SSN", "Prescription", "RawPatientSSN")
    tracer.record_propagation("PatientRecord", "FullName", "PharmacyOrder", "PatientName")
    assert tracer.max_propagation_depth() == 1


def test_unknown_references_rejected(clinic_session):
    tracer = clinic_session.tracer
    with pytest.raises(UnknownEntity):
        tracer.record_propagation("Nurse", "SSN", "Prescription", "RawPatientSSN")
    with pytest.raises(UnknownAttribute):
        tracer.record_propagation("PatientRecord", "SSN", "Prescription", "Ssn")
    # Destination is validated even when the source is safe.
    with pytest.raises(UnknownEntity):
        tracer.record_propagation("PatientRecord", "FullName", "Nowhere", "Name")
    assert len(tracer) == 0


def test_node_without_outgoing_events_has_zero_hops(clinic_session):
    assert clinic_session.tracer.longest_chain_from("PatientRecord", "DOB") == 0


def test_out_of_order_hop_is_not_followed(clinic_session):
    """A hop recorded before the value arrived does not extend the chain."""
    tracer = clinic_session.tracer
    tracer.record_propagation("Prescription", "RawPatientSSN", "PrescriptionDTO", "PatientSSN")
    tracer.record_propagation("PatientRecord", "SSN", "Prescription", "RawPatientSSN")
    assert tracer.longest_chain_from("PatientRecord", "SSN") == 1
    assert tracer.max_propagation_depth() == 1


def test_longest_branch_wins(clinic_session):
    tracer = clinic_session.tracer
    tracer.record_propagation("PatientRecord", "SSN", "PharmacyOrder", "PatientName")
    tracer.record_propagation("PatientRecord", "SSN", "Prescription", "RawPatientSSN")
    tracer.record_propagation("Prescription", "RawPatientSSN", "PrescriptionDTO", "PatientSSN")
    tracer.record_propagation("PrescriptionDTO", "PatientSSN", "PharmacyAdapter", "APIKey")
    assert tracer.longest_chain_from("PatientRecord", "SSN") == 3
    assert tracer.max_propagation_depth() == 3


def test_cycle_is_truncated():
    """A -> B -> A -> B ... stops when a node would repeat."""
    session = AnalysisSession()
    session.register_entity("A", [vulnerable("x")]).unwrap()
    session.register_entity("B", [vulnerable("y")]).unwrap()
    tracer = session.tracer
    tracer.record_propagation("A", "x", "B", "y")
    tracer.record_propagation("B", "y", "A", "x")
    tracer.record_propagation("A", "x", "B", "y")
    tracer.record_propagation("B", "y", "A", "x")
    assert tracer.longest_chain_from("A", "x") == 1
    assert tracer.longest_chain_from("B", "y") == 1
    assert tracer.max_propagation_depth() == 1


def test_max_depth_only_considers_origins():
    """Depth is taken over sources of recorded events, including mid-chain sources."""
    session = AnalysisSession()
    for name in ("A", "B", "C", "D"):
        session.register_entity(name, [safe("id"), vulnerable("v")]).unwrap()
    tracer = session.tracer
    tracer.record_propagation("A", "v", "B", "v")
    tracer.record_propagation("C", "v", "D", "v")
    tracer.record_propagation("B", "v", "C", "v")
    # A->B (1) then B->C (3), but C->D was seq 2, before the value reached C.
    assert tracer.longest_chain_from("A", "v") == 2
    assert tracer.origins() == (("A", "v"), ("C", "v"), ("B", "v"))
    assert tracer.max_propagation_depth() == 2


def test_sequence_numbers_strictly_increase(clinic_session):
    tracer = clinic_session.tracer
    tracer.record_propagation("PatientRecord", "SSN", "Prescription", "RawPatientSSN")
    tracer.record_propagation("PatientRecord", "FullName", "PharmacyOrder", "PatientName")
    tracer.record_propagation("PatientRecord", "DOB", "PrescriptionDTO", "PatientSSN")
    assert [e.sequence for e in tracer.events()] == [1, 2]


def test_chain_leaves_a_cycle_through_its_best_exit():
    """A <-> B form a cycle; chains still leave it through B -> C and C -> D."""
    session = AnalysisSession()
    for name in ("A", "B", "C", "D"):
        session.register_entity(name, [vulnerable("v")]).unwrap()
    tracer = session.tracer
    tracer.record_propagation("A", "v", "B", "v")  # 1
    tracer.record_propagation("B", "v", "A", "v")  # 2
    tracer.record_propagation("B", "v", "C", "v")  # 3
    tracer.record_propagation("C", "v", "D", "v")  # 4
    tracer.record_propagation("A", "v", "C", "v")  # 5
    assert tracer.longest_path_from("A", "v").path == (("A", "v"), ("B", "v"), ("C", "v"), ("D", "v"))
    # B -> A -> C and B -> C -> D tie at 2 hops; the earlier event wins.
    assert tracer.longest_path_from("B", "v").path == (("B", "v"), ("A", "v"), ("C", "v"))
    assert tracer.longest_chain_from("C", "v") == 1
    assert tracer.max_propagation_depth() == 3


def test_self_copy_is_not_a_hop():
    session = AnalysisSession()
    session.register_entity("A", [vulnerable("x"), vulnerable("y")]).unwrap()
    tracer = session.tracer
    tracer.record_propagation("A", "x", "A", "x")
    tracer.record_propagation("A", "x", "A", "y")
    assert tracer.longest_path_from("A", "x").path == (("A", "x"), ("A", "y"))
    assert tracer.max_propagation_depth() == 1


def test_layered_fan_out_stays_fast():
    """Every attribute of a layer copies into every attribute of the next: 116 events, 29 hops."""
    layers = 30
    session = AnalysisSession()
    for i in range(layers):
        session.register_entity(f"L{i}", [vulnerable("a"), vulnerable("b")]).unwrap()
    for i in range(layers - 1):
        for src in ("a", "b"):
            for dst in ("a", "b"):
                session.record_propagation(f"L{i}", src, f"L{i + 1}", dst).unwrap()
    assert len(session.tracer) == 116

    started = time.perf_counter()
    report = session.build_report(ReportOptions(verbose=True))
    chain = session.tracer.longest_path_from("L0", "a")
    elapsed = time.perf_counter() - started

    assert report.max_civpf == layers - 1
    assert chain.hops == layers - 1
    assert chain.path[-1] == (f"L{layers - 1}", "a")
    assert len(report.chains) == 2 * (layers - 1)
    assert elapsed < 5.0
