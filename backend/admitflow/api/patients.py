from typing import List

from fastapi import APIRouter, Depends, File, UploadFile

from ..core.config import settings
from ..core.errors import ValidationError
from ..services.document_analysis import DocumentAnalysisClient
from ..services.documents import DocumentIntake
from ..services.onboarding import OnboardingStateMachine
from ..services.unit_of_work import UnitOfWork
from .deps import get_document_client, get_state_machine, get_uow
from .schemas import ActivityResponse, ApiModel, DocumentResponse, PatientResponse

router = APIRouter(prefix="/patients", tags=["patients"])


class DocumentUploadResponse(ApiModel):
    document: DocumentResponse
    analysis_result: dict
    filled_fields: dict


@router.get("/", response_model=List[PatientResponse])
def list_patients(uow: UnitOfWork = Depends(get_uow)):
    return uow.patients.list()


@router.get("/{patient_id}", response_model=PatientResponse)
def get_patient(
    patient_id: str,
    machine: OnboardingStateMachine = Depends(get_state_machine),
):
    return machine.load(patient_id)


@router.get("/{patient_id}/activities", response_model=List[ActivityResponse])
def get_patient_activities(
    patient_id: str,
    machine: OnboardingStateMachine = Depends(get_state_machine),
):
    """Audit trail for one patient, oldest first."""
    patient = machine.load(patient_id)
    return machine.uow.activities.for_patient(patient.id)


@router.post("/{patient_id}/documents", response_model=DocumentUploadResponse)
async def upload_document(
    patient_id: str,
    document: UploadFile = File(...),
    uow: UnitOfWork = Depends(get_uow),
    client: DocumentAnalysisClient = Depends(get_document_client),
):
    """Analyse an uploaded document and pre-fill blank patient fields from it."""
    data = await document.read(settings.DOCUMENT_MAX_BYTES + 1)
    if not document.filename:
        raise ValidationError("No file uploaded", field="document")
    intake = DocumentIntake(uow, client, config=settings)
    result = intake.apply_document(
        patient_id,
        file_name=document.filename,
        file_type=document.content_type or "application/octet-stream",
        data=data,
    )
    return DocumentUploadResponse(
        document=DocumentResponse.model_validate(result.document),
        analysis_result=result.analysis,
        filled_fields=result.filled_fields,
    )
