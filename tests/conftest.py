"""
Pytest fixtures for flowrisk tests. Every fixture builds its own AnalysisSession,
so no state is shared between tests.
"""

from __future__ import annotations

import pytest

from flowrisk.analysis_engine import AnalysisSession, safe, vulnerable

PATIENT_ATTRIBUTES = (
    safe("PatientID"),
    safe("FullName"),
    vulnerable("SSN"),
    vulnerable("DOB"),
    vulnerable("MedicalHistory"),
    vulnerable("CreditCardToken"),
)


@pytest.fixture
def session():
    """Empty analysis session."""
    return AnalysisSession()


@pytest.fixture
def clinic_session(session):
    """
    Small clinic model: PatientRecord (4/6 vulnerable), Doctor, Prescription,
    PrescriptionDTO, PharmacyAdapter, PharmacyOrder. No couplings or events yet.
    """
    session.register_entity("PatientRecord", PATIENT_ATTRIBUTES).unwrap()
    session.register_entity(
        "Doctor",
        [safe("DoctorID"), safe("FullName"), vulnerable("AuthToken")],
    ).unwrap()
    session.register_entity(
        "Prescription",
        [safe("PrescriptionID"), safe("PatientID"), vulnerable("RawPatientSSN"), vulnerable("DrugCost")],
    ).unwrap()
    session.register_entity(
        "PrescriptionDTO",
        [safe("PrescriptionID"), vulnerable("PatientSSN")],
    ).unwrap()
    session.register_entity(
        "PharmacyAdapter",
        [safe("PharmacyID"), vulnerable("APIKey")],
    ).unwrap()
    session.register_entity(
        "PharmacyOrder",
        [safe("OrderID"), safe("PatientName")],
    ).unwrap()
    return session


@pytest.fixture
def medilink_session():
    """Session seeded with the full MediLink scenario."""
    from flowrisk.scenarios.medilink import build_medilink_session

    return build_medilink_session()
