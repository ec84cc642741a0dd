from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import ConfigDict, Field

from ..services.completion import CompletionWorkflow
from ..services.onboarding import OnboardingStateMachine
from .deps import get_completion_workflow, get_state_machine
from .schemas import ApiModel, OnboardingStateResponse, PatientResponse

router = APIRouter(prefix="/onboarding", tags=["onboarding"])


class StepRequest(ApiModel):
    """A step submission: patientId plus the step's form fields."""
    model_config = ConfigDict(extra="allow")

    patient_id: Optional[str] = None

    @property
    def form(self) -> dict:
        return dict(self.model_extra or {})


class PersonalRequest(StepRequest):
    is_emergency: bool = False
    emergency_type: Optional[str] = None


class CompleteRequest(ApiModel):
    patient_id: Optional[str] = None
    emergency_type: Optional[str] = None
    # Explicit location skips automatic assignment
    admission_location: Optional[str] = Field(None, max_length=200)


@router.post("/personal", response_model=PatientResponse)
def submit_personal(
    request: PersonalRequest,
    machine: OnboardingStateMachine = Depends(get_state_machine),
):
    """
    Step 1. Creates the patient when no patientId is given, otherwise updates
    the existing record. isEmergency and emergencyType only apply on creation.
    """
    return machine.submit_personal(
        request.form,
        patient_id=request.patient_id,
        is_emergency=request.is_emergency,
        emergency_type=request.emergency_type,
    )


@router.post("/insurance", response_model=PatientResponse)
def submit_insurance(
    request: StepRequest,
    machine: OnboardingStateMachine = Depends(get_state_machine),
):
    return machine.submit_insurance(request.patient_id, request.form)


@router.post("/medical", response_model=PatientResponse)
def submit_medical(
    request: StepRequest,
    machine: OnboardingStateMachine = Depends(get_state_machine),
):
    return machine.submit_medical(request.patient_id, request.form)


@router.post("/complete", response_model=PatientResponse, status_code=status.HTTP_200_OK)
def complete_onboarding(
    request: CompleteRequest,
    workflow: CompletionWorkflow = Depends(get_completion_workflow),
):
    if request.admission_location:
        return workflow.machine.complete(request.patient_id, request.admission_location)
    return workflow.finish(request.patient_id, emergency_type=request.emergency_type)


@router.get("/{patient_id}/state", response_model=OnboardingStateResponse)
def get_onboarding_state(
    patient_id: str,
    machine: OnboardingStateMachine = Depends(get_state_machine),
):
    return machine.state(patient_id)
