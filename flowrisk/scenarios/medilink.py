"""
MediLink telemedicine scenario: patients, doctors, prescriptions, pharmacy.

Translates the MediLink domain classes into flowrisk declarations: each
class becomes an entity, object references become couplings, copied
sensitive fields become propagation events, and each method becomes an
operation access record. Role entities take their credential fields from
CREDENTIALS_TEMPLATE instead of a shared base class.

Expected headline numbers: PatientRecord AVR 4/6, Doctor AVR 2/5,
system VCC 3, max CIVPF 2 (SSN -> Prescription -> PrescriptionDTO).
"""

from __future__ import annotations

from flowrisk.analysis_engine.models import (
    CREDENTIALS_TEMPLATE,
    AttributeDef,
    compose_attributes,
    safe,
    vulnerable,
)
from flowrisk.analysis_engine.reporter import ReportOptions
from flowrisk.analysis_engine.session import AnalysisSession, OperationResult

ENTITIES: dict[str, tuple[AttributeDef, ...]] = {
    "PatientRecord": (
        safe("PatientID"),
        safe("FullName"),
        vulnerable("DOB"),
        vulnerable("SSN"),
        vulnerable("MedicalHistory"),
        vulnerable("CreditCardToken"),
    ),
    "Doctor": compose_attributes(
        safe("DoctorID"),
        safe("FullName"),
        safe("Specialty"),
        CREDENTIALS_TEMPLATE,
    ),
    "Admin": compose_attributes(
        safe("UserID"),
        safe("FullName"),
        CREDENTIALS_TEMPLATE,
        safe("AccessLevel"),
        safe("Role"),
    ),
    "Prescription": (
        safe("PrescriptionID"),
        safe("PatientID"),
        safe("DrugName"),
        safe("Dosage"),
        vulnerable("DrugCost"),
        vulnerable("RawPatientSSN"),
        vulnerable("DoctorAuthToken"),
    ),
    "PrescriptionDTO": (
        safe("PrescriptionID"),
        safe("PatientID"),
        safe("DrugName"),
        safe("Dosage"),
        vulnerable("PatientSSN"),
        vulnerable("AuthToken"),
    ),
    "PharmacyAdapter": (
        safe("PharmacyID"),
        safe("PharmacyName"),
        vulnerable("APIKey"),
        vulnerable("ConnectionString"),
    ),
    "PharmacyOrder": (
        safe("OrderID"),
        safe("OrderDate"),
        safe("Status"),
        safe("PatientName"),
    ),
    "Appointment": (
        safe("AppointmentID"),
        safe("PatientID"),
        safe("DoctorID"),
        safe("AppointmentDate"),
        safe("Duration"),
        safe("Status"),
        safe("Notes"),
    ),
}

# (source, target, operation, attributes of source holding copied values)
COUPLINGS: tuple[tuple[str, str, str, frozenset[str]], ...] = (
    ("Prescription", "PatientRecord", "Create", frozenset({"PatientID", "RawPatientSSN"})),
    ("Prescription", "Doctor", "Create", frozenset({"DoctorAuthToken"})),
    ("Prescription", "PatientRecord", "Validate", frozenset()),
    ("PharmacyAdapter", "Prescription", "TransmitPrescription", frozenset()),
)

# (source entity, source attribute, dest entity, dest attribute), in the order they happen
PROPAGATIONS: tuple[tuple[str, str, str, str], ...] = (
    ("PatientRecord", "SSN", "Prescription", "RawPatientSSN"),
    ("Doctor", "AuthToken", "Prescription", "DoctorAuthToken"),
    ("Prescription", "RawPatientSSN", "PrescriptionDTO", "PatientSSN"),
    ("Prescription", "DoctorAuthToken", "PrescriptionDTO", "AuthToken"),
    # Safe source: accepted, not tracked.
    ("PatientRecord", "FullName", "PharmacyOrder", "PatientName"),
)

# (entity, operation, attributes accessed)
ACCESSES: tuple[tuple[str, str, frozenset[str]], ...] = (
    ("PatientRecord", "GetBasicInfo", frozenset({"PatientID", "FullName"})),
    ("PatientRecord", "GenerateReport", frozenset({"FullName", "SSN", "DOB", "MedicalHistory", "CreditCardToken"})),
    ("PatientRecord", "GetSSN", frozenset({"SSN"})),
    ("PatientRecord", "UpdateSSN", frozenset({"SSN"})),
    ("PatientRecord", "ExportAllData", frozenset(a.name for a in ENTITIES["PatientRecord"])),
    ("Doctor", "ValidatePassword", frozenset({"Password"})),
    ("Doctor", "GetAuthToken", frozenset({"AuthToken"})),
    ("Doctor", "GenerateNewToken", frozenset({"DoctorID", "AuthToken"})),
    ("Prescription", "Create", frozenset({"PrescriptionID", "PatientID"})),
    ("Prescription", "DebugPrint", frozenset({"PrescriptionID", "PatientID"})),
    ("Prescription", "CalculateTotalCost", frozenset({"PrescriptionID", "DrugCost"})),
    ("PharmacyAdapter", "TransmitPrescription", frozenset({"PharmacyID", "PharmacyName", "APIKey", "ConnectionString"})),
    ("PharmacyAdapter", "VerifyPatientID", frozenset({"ConnectionString"})),
    ("PharmacyAdapter", "LogTransaction", frozenset({"PharmacyID"})),
    ("PharmacyOrder", "MarkFulfilled", frozenset({"OrderID", "PatientName", "Status"})),
    ("Appointment", "Schedule", frozenset({"AppointmentID", "PatientID", "DoctorID", "AppointmentDate", "Duration", "Status"})),
)


def seed_medilink(session: AnalysisSession) -> list[OperationResult]:
    """Declare the MediLink model into session. Returns every boundary result in call order."""
    results: list[OperationResult] = []
    for name, attributes in ENTITIES.items():
        results.append(session.register_entity(name, attributes))
    for source, target, operation, copied in COUPLINGS:
        results.append(session.add_coupling(source, target, operation, copied))
    for src_entity, src_attr, dst_entity, dst_attr in PROPAGATIONS:
        results.append(session.record_propagation(src_entity, src_attr, dst_entity, dst_attr))
    for entity, operation, accessed in ACCESSES:
        results.append(session.record_operation_access(entity, operation, accessed))
    return results


def build_medilink_session(options: ReportOptions | None = None) -> AnalysisSession:
    """New session seeded with the MediLink model."""
    session = AnalysisSession(options=options)
    seed_medilink(session)
    return session
