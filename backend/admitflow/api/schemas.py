"""Response models shared across routers. Wire format is camelCase."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class PatientResponse(ApiModel):
    id: str
    first_name: str
    last_name: str
    date_of_birth: str
    phone: str
    address: str

    emergency_contact_name: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    insurance_provider: Optional[str] = None
    insurance_policy_number: Optional[str] = None
    insurance_group_number: Optional[str] = None
    insurance_status: Optional[str] = None

    allergies: Optional[str] = None
    medications: Optional[str] = None
    medical_history: Optional[Dict[str, Any]] = None

    onboarding_step: int
    is_completed: bool
    is_emergency: bool
    emergency_type: Optional[str] = None
    admission_location: Optional[str] = None

    created_at: datetime
    updated_at: datetime


class ActivityResponse(ApiModel):
    id: str
    patient_id: Optional[str] = None
    action: str
    description: str
    created_at: datetime


class DocumentResponse(ApiModel):
    id: str
    patient_id: Optional[str] = None
    file_name: str
    file_type: str
    analysis_result: Optional[Dict[str, Any]] = None
    created_at: datetime


class OnboardingStateResponse(ApiModel):
    patient_id: str
    path: str
    current_step: int
    is_completed: bool
    next_step: Optional[int] = None
    next_route: Optional[str] = None
    steps: List[int]
