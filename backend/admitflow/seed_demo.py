"""
Demo data seeder for AdmitFlow.

Walks a few sample patients through the onboarding state machine so the
dashboard and activity feed have something to show after a fresh start:

  Maria Garcia  : standard path, completed (General Admission)
  James Wilson  : standard path, waiting on medical history
  Emergency case: cardiac emergency, completed (Cardiac Care Unit)

This seeder is idempotent - it is safe to call on every startup.
"""
from .models.base import SessionLocal, Base, engine
from .models.patient import Patient
from .services.completion import CompletionWorkflow
from .services.onboarding import OnboardingStateMachine
from .services.unit_of_work import SqlUnitOfWork

DEMO_PATIENTS = [
    {
        "personal": {
            "firstName": "Maria",
            "lastName": "Garcia",
            "dateOfBirth": "1985-03-12",
            "phone": "5550101234",
            "address": "42 Harbor View Rd, Springfield",
            "emergencyContactName": "Luis Garcia",
            "emergencyContactRelationship": "Spouse",
            "emergencyContactPhone": "5550105678",
        },
        "insurance": {
            "insuranceProvider": "Blue Cross Blue Shield",
            "insurancePolicyNumber": "BCB-448812",
            "insuranceGroupNumber": "GRP-100",
        },
        "medical": {
            "allergies": "Penicillin",
            "medications": "Lisinopril",
            "medicalHistory": {"conditions": "Hypertension"},
        },
        "complete": True,
    },
    {
        "personal": {
            "firstName": "James",
            "lastName": "Wilson",
            "dateOfBirth": "1972-11-30",
            "phone": "5550109876",
            "address": "7 Elm Street, Springfield",
        },
        "insurance": {
            "insuranceProvider": "Aetna",
            "insurancePolicyNumber": "AET-993107",
        },
    },
    {
        "personal": {
            "firstName": "Robert",
            "lastName": "Chen",
            "dateOfBirth": "1958-07-04",
            "phone": "5550104455",
            "address": "15 Oak Avenue, Springfield",
        },
        "emergency_type": "cardiac",
        "complete": True,
    },
]


def seed_demo_data() -> None:
    """Create the demo patients unless they already exist."""
    # Ensure tables exist (no-op when already created by main.py)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        for entry in DEMO_PATIENTS:
            _seed_patient(db, entry)
    finally:
        db.close()


# ── helpers ──────────────────────────────────────────────────────────────────

def _seed_patient(db, entry: dict) -> None:
    personal = entry["personal"]
    existing = (
        db.query(Patient)
        .filter(Patient.first_name == personal["firstName"])
        .filter(Patient.last_name == personal["lastName"])
        .first()
    )
    if existing:
        return

    machine = OnboardingStateMachine(SqlUnitOfWork(db))
    emergency_type = entry.get("emergency_type")
    patient = machine.submit_personal(
        personal,
        is_emergency=emergency_type is not None,
        emergency_type=emergency_type,
    )
    if "insurance" in entry:
        patient = machine.submit_insurance(patient.id, entry["insurance"])
    if "medical" in entry:
        patient = machine.submit_medical(patient.id, entry["medical"])
    if entry.get("complete"):
        patient = CompletionWorkflow(machine).finish(patient.id)
    print(f"[seed] Created demo patient: {patient.full_name} (step {patient.onboarding_step})")
