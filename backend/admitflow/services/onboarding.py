"""
Onboarding state machine.

Standard path:  1 personal -> 2 insurance -> 3 medical -> 4 completed
Emergency path: 1 personal -> 2 completed

Every transition names the steps it may start from and the step it moves to;
the step never goes backwards. The emergency flag is fixed when the patient
is created. Each transition writes the patient and appends exactly one
activity inside a single unit-of-work transaction.
"""
import logging
import uuid
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Mapping, Optional, Type, Union

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..core.config import Settings, settings as default_settings
from ..core.errors import (
    InvalidTransitionError,
    MissingPatientIdError,
    NotFoundError,
    OnboardingClosedError,
    ValidationError,
)
from ..models.activity import ActivityAction
from ..models.patient import EmergencyType, InsuranceStatus, Patient
from .forms import EmergencyPersonalInfo, InsuranceInfo, MedicalInfo, PersonalInfo
from .patient_store import REQUIRED_FIELDS
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)


class OnboardingPath:
    STANDARD = "standard"
    EMERGENCY = "emergency"


class Step:
    PERSONAL = 1
    INSURANCE = 2
    MEDICAL = 3
    COMPLETED = 4
    EMERGENCY_COMPLETED = 2


@dataclass(frozen=True)
class Transition:
    name: str
    sources: FrozenSet[int]
    target: int

    def apply(self, path: str, current_step: int) -> int:
        if current_step not in self.sources:
            raise InvalidTransitionError(
                f"Cannot submit {self.name} from step {current_step} on the {path} path",
                current_step=current_step,
                target_step=self.target,
            )
        return max(current_step, self.target)


TRANSITIONS: Dict[str, Dict[str, Transition]] = {
    OnboardingPath.STANDARD: {
        "personal": Transition("personal", frozenset({1, 2, 3}), Step.PERSONAL),
        "insurance": Transition("insurance", frozenset({1, 2, 3}), Step.INSURANCE),
        "medical": Transition("medical", frozenset({2, 3}), Step.MEDICAL),
        "complete": Transition("complete", frozenset({1, 2, 3, 4}), Step.COMPLETED),
    },
    OnboardingPath.EMERGENCY: {
        "personal": Transition("personal", frozenset({1}), Step.PERSONAL),
        "complete": Transition("complete", frozenset({1, 2}), Step.EMERGENCY_COMPLETED),
    },
}

# Client routes for each step, in order
STEP_ROUTES: Dict[str, List[tuple]] = {
    OnboardingPath.STANDARD: [
        (Step.PERSONAL, "personal", "/onboarding/personal"),
        (Step.INSURANCE, "insurance", "/onboarding/insurance"),
        (Step.MEDICAL, "medical", "/onboarding/medical"),
        (Step.COMPLETED, "completed", "/onboarding/confirmation"),
    ],
    OnboardingPath.EMERGENCY: [
        (Step.PERSONAL, "personal", "/onboarding/emergency"),
        (Step.EMERGENCY_COMPLETED, "completed", "/onboarding/confirmation"),
    ],
}


def path_of(patient: Patient) -> str:
    return OnboardingPath.EMERGENCY if patient.is_emergency else OnboardingPath.STANDARD


def terminal_step(path: str) -> int:
    return TRANSITIONS[path]["complete"].target


def next_step(path: str, current_step: int) -> Optional[int]:
    """The step a client should show after current_step, or None at the end."""
    for step, _name, _route in STEP_ROUTES[path]:
        if step > current_step:
            return step
    return None


def route_for(path: str, step: int) -> Optional[str]:
    for candidate, _name, route in STEP_ROUTES[path]:
        if candidate == step:
            return route
    return None


def require_patient_id(patient_id: Optional[str]) -> str:
    """Reject blank or non-uuid ids before any store access."""
    if not patient_id or not isinstance(patient_id, str):
        raise MissingPatientIdError(patient_id)
    try:
        uuid.UUID(patient_id)
    except ValueError:
        raise MissingPatientIdError(patient_id)
    return patient_id


def identity_placeholders(config: Settings) -> Dict[str, str]:
    """Values stored for identity fields an emergency registration left out."""
    return {
        "first_name": config.EMERGENCY_PLACEHOLDER_FIRST_NAME,
        "last_name": config.EMERGENCY_PLACEHOLDER_LAST_NAME,
        "date_of_birth": config.EMERGENCY_PLACEHOLDER_VALUE,
        "phone": config.EMERGENCY_PLACEHOLDER_VALUE,
        "address": config.EMERGENCY_PLACEHOLDER_VALUE,
    }


def _parse(
    model: Type[BaseModel],
    data: Union[BaseModel, Mapping, None],
    config: Optional[Settings] = None,
) -> BaseModel:
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    context = {"phone_min_length": (config or default_settings).PHONE_MIN_LENGTH}
    try:
        return model.model_validate(data or {}, context=context)
    except PydanticValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        raise ValidationError(f"{loc}: {first['msg']}", field=loc or None) from exc


@dataclass
class OnboardingState:
    patient_id: str
    path: str
    current_step: int
    is_completed: bool
    next_step: Optional[int]
    next_route: Optional[str]
    steps: List[int] = field(default_factory=list)


class OnboardingStateMachine:
    """Validates step submissions and applies the resulting patient mutation."""

    def __init__(self, uow: UnitOfWork, config: Optional[Settings] = None):
        self.uow = uow
        self.config = config or default_settings

    # ── Queries ──────────────────────────────────────────────────────────────

    def load(self, patient_id: Optional[str]) -> Patient:
        patient_id = require_patient_id(patient_id)
        patient = self.uow.patients.get(patient_id)
        if patient is None:
            raise NotFoundError(patient_id)
        return patient

    def state(self, patient_id: Optional[str]) -> OnboardingState:
        patient = self.load(patient_id)
        path = path_of(patient)
        upcoming = None if patient.is_completed else next_step(path, patient.onboarding_step)
        return OnboardingState(
            patient_id=patient.id,
            path=path,
            current_step=patient.onboarding_step,
            is_completed=bool(patient.is_completed),
            next_step=upcoming,
            next_route=route_for(path, upcoming or terminal_step(path)),
            steps=[step for step, _name, _route in STEP_ROUTES[path]],
        )

    # ── Transitions ──────────────────────────────────────────────────────────

    def submit_personal(
        self,
        data: Union[BaseModel, Mapping],
        patient_id: Optional[str] = None,
        is_emergency: bool = False,
        emergency_type: Optional[str] = None,
    ) -> Patient:
        if patient_id:
            return self._update_personal(patient_id, data)

        info = self._personal_info(data, is_emergency)
        fields = info.model_dump()
        fields.update(
            onboarding_step=Step.PERSONAL,
            is_completed=False,
            is_emergency=bool(is_emergency),
            emergency_type=_emergency_type(emergency_type) if is_emergency else None,
        )
        with self.uow.transaction():
            patient = self.uow.patients.create(fields)
            self.uow.activities.record(
                patient.id,
                ActivityAction.PATIENT_CREATED,
                f"Patient {patient.full_name} created"
                + (" (emergency registration)" if patient.is_emergency else ""),
            )
        logger.info("Patient %s created on the %s path", patient.id, path_of(patient))
        return patient

    def _update_personal(self, patient_id: str, data) -> Patient:
        with self.uow.transaction():
            patient = self._open_patient(patient_id)
            path = path_of(patient)
            step = TRANSITIONS[path]["personal"].apply(path, patient.onboarding_step)
            info = self._personal_info(data, patient.is_emergency, fill_placeholders=False)
            # Fields left out of the payload keep their stored values
            fields = {
                name: value
                for name, value in info.model_dump(exclude_unset=True).items()
                if value is not None or name not in REQUIRED_FIELDS
            }
            fields["onboarding_step"] = step
            patient = self.uow.patients.update(patient.id, fields)
            self.uow.activities.record(
                patient.id,
                ActivityAction.PATIENT_UPDATED,
                f"Patient {patient.full_name} updated personal information",
            )
        return patient

    def submit_insurance(self, patient_id: Optional[str], data: Union[BaseModel, Mapping]) -> Patient:
        return self._advance(
            patient_id,
            "insurance",
            InsuranceInfo,
            data,
            extra={"insurance_status": InsuranceStatus.PENDING},
            describe="insurance information saved",
        )

    def submit_medical(self, patient_id: Optional[str], data: Union[BaseModel, Mapping, None]) -> Patient:
        return self._advance(
            patient_id,
            "medical",
            MedicalInfo,
            data,
            describe="medical history saved",
        )

    def complete(self, patient_id: Optional[str], admission_location: Optional[str]) -> Patient:
        """
        Terminal transition. Repeating it rewrites the location (last write
        wins) and appends another onboarding_completed activity.
        """
        patient_id = require_patient_id(patient_id)
        location = (admission_location or "").strip()
        if not location:
            raise ValidationError("admissionLocation is required", field="admissionLocation")

        with self.uow.transaction():
            patient = self.uow.patients.get(patient_id)
            if patient is None:
                raise NotFoundError(patient_id)
            path = path_of(patient)
            step = TRANSITIONS[path]["complete"].apply(path, patient.onboarding_step)
            patient = self.uow.patients.complete(patient.id, location, onboarding_step=step)
            self.uow.activities.record(
                patient.id,
                ActivityAction.ONBOARDING_COMPLETED,
                f"Onboarding completed for {patient.full_name} - admitted to {location}",
            )
        logger.info("Onboarding completed for patient %s at %s", patient.id, location)
        return patient

    # ── Helpers ──────────────────────────────────────────────────────────────

    def _open_patient(self, patient_id: Optional[str]) -> Patient:
        patient = self.load(patient_id)
        if patient.is_completed:
            raise OnboardingClosedError(
                f"Onboarding for patient {patient.id} is already completed",
                current_step=patient.onboarding_step,
            )
        return patient

    def _advance(
        self,
        patient_id: Optional[str],
        transition_name: str,
        model: Type[BaseModel],
        data,
        describe: str,
        extra: Optional[Dict] = None,
    ) -> Patient:
        require_patient_id(patient_id)
        with self.uow.transaction():
            patient = self._open_patient(patient_id)
            path = path_of(patient)
            transition = TRANSITIONS[path].get(transition_name)
            if transition is None:
                raise InvalidTransitionError(
                    f"The {transition_name} step is not part of the {path} path",
                    current_step=patient.onboarding_step,
                )
            step = transition.apply(path, patient.onboarding_step)
            fields = _parse(model, data, self.config).model_dump(exclude_unset=True)
            fields.update(extra or {})
            fields["onboarding_step"] = step
            patient = self.uow.patients.update(patient.id, fields)
            self.uow.activities.record(
                patient.id,
                ActivityAction.PATIENT_UPDATED,
                f"Patient {patient.full_name} {describe}",
            )
        logger.info("Patient %s advanced to step %d (%s)", patient.id, step, transition_name)
        return patient

    def _personal_info(self, data, is_emergency: bool, fill_placeholders: bool = True) -> PersonalInfo:
        if not (is_emergency and not self.config.EMERGENCY_COLLECT_IDENTITY):
            return _parse(PersonalInfo, data, self.config)

        info = _parse(EmergencyPersonalInfo, data, self.config)
        if fill_placeholders:
            for name, placeholder in identity_placeholders(self.config).items():
                if not getattr(info, name):
                    setattr(info, name, placeholder)
        return info


def _emergency_type(value: Optional[str]) -> Optional[str]:
    if not value or not value.strip():
        return None
    key = value.strip().lower()
    if key not in EmergencyType.ALL:
        raise ValidationError(
            f"Unknown emergency type {value!r}; expected one of {', '.join(EmergencyType.ALL)}",
            field="emergencyType",
        )
    return key
