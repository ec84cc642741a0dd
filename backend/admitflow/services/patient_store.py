"""
Patient Record Store.

All operations are keyed by the opaque patient id. Lookups of unknown ids
return None instead of raising so callers decide how to report them.
The SQL implementation only flushes; commits belong to the unit of work.
"""
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import PersistenceError, ValidationError
from ..models.base import generate_uuid, utcnow
from ..models.patient import Patient

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("first_name", "last_name", "date_of_birth", "phone", "address")

STORED_FIELDS = REQUIRED_FIELDS + (
    "emergency_contact_name",
    "emergency_contact_relationship",
    "emergency_contact_phone",
    "insurance_provider",
    "insurance_policy_number",
    "insurance_group_number",
    "insurance_status",
    "allergies",
    "medications",
    "medical_history",
    "onboarding_step",
    "is_completed",
    "is_emergency",
    "emergency_type",
    "admission_location",
)


def _check_fields(fields: Dict) -> None:
    unknown = set(fields) - set(STORED_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown patient fields: {', '.join(sorted(unknown))}")


def _initial_row(fields: Dict) -> Dict:
    _check_fields(fields)
    for name in REQUIRED_FIELDS:
        if not fields.get(name):
            raise ValidationError(f"{name} is required", field=name)
    now = utcnow()
    row = {name: None for name in STORED_FIELDS}
    row.update(
        onboarding_step=1,
        is_completed=False,
        is_emergency=False,
    )
    row.update(fields)
    row.update(id=generate_uuid(), created_at=now, updated_at=now)
    return row


class PatientStore(ABC):
    """Persistence contract for onboarding subjects."""

    @abstractmethod
    def get(self, patient_id: str) -> Optional[Patient]:
        ...

    @abstractmethod
    def list(self) -> List[Patient]:
        ...

    @abstractmethod
    def create(self, fields: Dict) -> Patient:
        """Assign a fresh id, set both timestamps and persist."""
        ...

    @abstractmethod
    def update(self, patient_id: str, fields: Dict) -> Optional[Patient]:
        """Apply a partial update and refresh updated_at."""
        ...

    def complete(
        self,
        patient_id: str,
        admission_location: str,
        onboarding_step: Optional[int] = None,
    ) -> Optional[Patient]:
        fields = {"is_completed": True, "admission_location": admission_location}
        if onboarding_step is not None:
            fields["onboarding_step"] = onboarding_step
        return self.update(patient_id, fields)


class SqlPatientStore(PatientStore):
    def __init__(self, db: Session):
        self.db = db

    def get(self, patient_id: str) -> Optional[Patient]:
        try:
            return self.db.query(Patient).filter(Patient.id == patient_id).first()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load patient {patient_id}") from exc

    def list(self) -> List[Patient]:
        try:
            return self.db.query(Patient).order_by(Patient.created_at.desc()).all()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to list patients") from exc

    def create(self, fields: Dict) -> Patient:
        patient = Patient(**_initial_row(fields))
        try:
            self.db.add(patient)
            self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to create patient") from exc
        logger.debug("Created patient %s", patient.id)
        return patient

    def update(self, patient_id: str, fields: Dict) -> Optional[Patient]:
        _check_fields(fields)
        patient = self.get(patient_id)
        if patient is None:
            return None
        for name, value in fields.items():
            setattr(patient, name, value)
        patient.updated_at = utcnow()
        try:
            self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to update patient {patient_id}") from exc
        return patient


class InMemoryPatientStore(PatientStore):
    """Dict-backed store. Every read hands out a detached copy."""

    def __init__(self):
        self._rows: Dict[str, Dict] = {}

    def _to_patient(self, row: Dict) -> Patient:
        return Patient(**row)

    def get(self, patient_id: str) -> Optional[Patient]:
        row = self._rows.get(patient_id)
        return self._to_patient(row) if row is not None else None

    def list(self) -> List[Patient]:
        rows = sorted(self._rows.values(), key=lambda r: r["created_at"], reverse=True)
        return [self._to_patient(r) for r in rows]

    def create(self, fields: Dict) -> Patient:
        row = _initial_row(fields)
        self._rows[row["id"]] = row
        return self._to_patient(row)

    def update(self, patient_id: str, fields: Dict) -> Optional[Patient]:
        _check_fields(fields)
        row = self._rows.get(patient_id)
        if row is None:
            return None
        row.update(fields)
        row["updated_at"] = utcnow()
        return self._to_patient(row)

    def snapshot(self) -> Dict[str, Dict]:
        return {pid: dict(row) for pid, row in self._rows.items()}

    def restore(self, snapshot: Dict[str, Dict]) -> None:
        self._rows = snapshot
