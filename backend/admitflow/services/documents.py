"""
Document pre-fill.

An uploaded document is analysed by the external provider and its extracted
values are offered as candidates for blank patient fields. A value the patient
already entered is never overwritten, and a provider failure never blocks
onboarding: the upload is recorded with an empty analysis instead.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from pydantic.alias_generators import to_snake

from ..core.config import Settings, settings as default_settings
from ..core.errors import ExternalServiceError, ValidationError
from ..models.activity import ActivityAction
from ..models.document import Document
from ..models.patient import Patient
from .document_analysis import DocumentAnalysisClient
from .onboarding import OnboardingStateMachine, identity_placeholders
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

IDENTITY_FIELDS = (
    "first_name",
    "last_name",
    "date_of_birth",
    "phone",
    "address",
    "emergency_contact_name",
    "emergency_contact_relationship",
    "emergency_contact_phone",
)
INSURANCE_FIELDS = (
    "insurance_provider",
    "insurance_policy_number",
    "insurance_group_number",
)
MEDICAL_FIELDS = ("allergies", "medications")


def prefill_fields(patient: Patient) -> tuple:
    """Fields a document may fill for this patient. Emergency patients have no insurance step."""
    if patient.is_emergency:
        return IDENTITY_FIELDS + MEDICAL_FIELDS
    return IDENTITY_FIELDS + INSURANCE_FIELDS + MEDICAL_FIELDS


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass
class DocumentIntakeResult:
    document: Document
    analysis: Dict
    filled_fields: Dict[str, str] = field(default_factory=dict)


class DocumentIntake:
    def __init__(
        self,
        uow: UnitOfWork,
        client: DocumentAnalysisClient,
        config: Optional[Settings] = None,
    ):
        self.uow = uow
        self.client = client
        self.config = config or default_settings
        self.machine = OnboardingStateMachine(uow, config=self.config)

    def apply_document(
        self,
        patient_id: Optional[str],
        file_name: str,
        file_type: str,
        data: bytes,
    ) -> DocumentIntakeResult:
        patient = self.machine.load(patient_id)
        if not data:
            raise ValidationError("No file uploaded", field="document")
        if len(data) > self.config.DOCUMENT_MAX_BYTES:
            raise ValidationError(
                f"Document exceeds the {self.config.DOCUMENT_MAX_BYTES} byte limit",
                field="document",
            )

        try:
            analysis = self.client.analyze(data, file_name, file_type)
            analysis_result = analysis.to_dict()
            candidates = {to_snake(k): v for k, v in analysis.fields.items()}
        except ExternalServiceError as exc:
            logger.warning("Pre-fill skipped for patient %s: %s", patient.id, exc.message)
            analysis_result = {"error": "Document analysis failed", "extractedText": None}
            candidates = {}

        with self.uow.transaction():
            patient = self.machine.load(patient.id)
            filled = {}
            if not patient.is_completed:
                # Emergency placeholders count as blank
                placeholders = identity_placeholders(self.config) if patient.is_emergency else {}
                for name in prefill_fields(patient):
                    value = candidates.get(name)
                    current = getattr(patient, name)
                    unset = _blank(current) or (name in placeholders and current == placeholders[name])
                    if unset and isinstance(value, str) and value.strip():
                        filled[name] = value.strip()
            if filled:
                self.uow.patients.update(patient.id, filled)
            document = self.uow.documents.add(patient.id, file_name, file_type, analysis_result)
            self.uow.activities.record(
                patient.id,
                ActivityAction.DOCUMENT_UPLOADED,
                f"Document {file_name} uploaded and analyzed",
            )

        if filled:
            logger.info("Pre-filled %s for patient %s", ", ".join(sorted(filled)), patient.id)
        return DocumentIntakeResult(document=document, analysis=analysis_result, filled_fields=filled)
