"""
Per-step form payloads.

Each model is the whitelist of fields its transition may write; anything else
in a submitted payload (isCompleted, admissionLocation, ...) is dropped.
Field names accept both camelCase (wire format) and snake_case.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel

from ..core.config import settings


def _phone_min_length(info: ValidationInfo) -> int:
    return (info.context or {}).get("phone_min_length", settings.PHONE_MIN_LENGTH)


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class PersonalInfo(CamelModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    date_of_birth: str = Field(..., min_length=1)
    phone: str
    address: str = Field(..., min_length=1)

    emergency_contact_name: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    emergency_contact_phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def _phone_length(cls, value: str, info: ValidationInfo) -> str:
        minimum = _phone_min_length(info)
        if len(value) < minimum:
            raise ValueError(f"phone must have at least {minimum} characters")
        return value


class EmergencyPersonalInfo(PersonalInfo):
    """Identity fields become optional when emergency registrations skip them."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def _phone_length(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        minimum = _phone_min_length(info)
        if value and len(value) < minimum:
            raise ValueError(f"phone must have at least {minimum} characters")
        return value or None


class InsuranceInfo(CamelModel):
    insurance_provider: str = Field(..., min_length=1)
    insurance_policy_number: str = Field(..., min_length=1)
    insurance_group_number: Optional[str] = None


class MedicalHistory(CamelModel):
    conditions: Optional[str] = None
    surgeries: Optional[str] = None
    family_history: Optional[str] = None


class MedicalInfo(CamelModel):
    allergies: Optional[str] = None
    medications: Optional[str] = None
    medical_history: Optional[MedicalHistory] = None
