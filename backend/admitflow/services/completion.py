"""
Completion workflow - admission location assignment and the final transition.
"""
import logging
import random
from typing import Callable, Dict, List, Optional

from ..core.config import Settings, settings as default_settings
from ..models.patient import EmergencyType, Patient
from .onboarding import OnboardingStateMachine

logger = logging.getLogger(__name__)


EMERGENCY_ROOM = "Emergency Room - Ground Floor, East Wing"
INTENSIVE_CARE_UNIT = "Intensive Care Unit - Floor 3, North Wing"
TRAUMA_CENTER = "Trauma Center - Ground Floor, West Wing"
CARDIAC_CARE_UNIT = "Cardiac Care Unit - Floor 2, East Wing"
PEDIATRIC_EMERGENCY = "Pediatric Emergency - Ground Floor, South Wing"

EMERGENCY_UNITS: Dict[str, str] = {
    EmergencyType.CARDIAC: CARDIAC_CARE_UNIT,
    EmergencyType.TRAUMA: TRAUMA_CENTER,
    EmergencyType.PEDIATRIC: PEDIATRIC_EMERGENCY,
}

# Fallback pool for unrecognised emergency types
EMERGENCY_BAYS: List[str] = [
    EMERGENCY_ROOM,
    INTENSIVE_CARE_UNIT,
    TRAUMA_CENTER,
    CARDIAC_CARE_UNIT,
    PEDIATRIC_EMERGENCY,
]

BedAssigner = Callable[[Patient], str]


class AdmissionLocator:
    """
    Decides where a finished patient is admitted.

    Emergency patients go to the unit matching their emergency type, or to a
    random bay when the type has no dedicated unit. Standard patients get the
    configured default unless a bed assigner is plugged in.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        bed_assigner: Optional[BedAssigner] = None,
    ):
        self.config = config or default_settings
        self.rng = rng or random.Random()
        self.bed_assigner = bed_assigner

    def emergency_location(self, emergency_type: Optional[str]) -> str:
        key = (emergency_type or "").strip().lower()
        if key in EMERGENCY_UNITS:
            return EMERGENCY_UNITS[key]
        return self.rng.choice(EMERGENCY_BAYS)

    def locate(self, patient: Patient, emergency_type: Optional[str] = None) -> str:
        if patient.is_emergency:
            return self.emergency_location(emergency_type or patient.emergency_type)
        if self.bed_assigner is not None:
            return self.bed_assigner(patient)
        return self.config.DEFAULT_ADMISSION_LOCATION


class CompletionWorkflow:
    def __init__(self, machine: OnboardingStateMachine, locator: Optional[AdmissionLocator] = None):
        self.machine = machine
        self.locator = locator or AdmissionLocator(config=machine.config)

    def finish(self, patient_id: Optional[str], emergency_type: Optional[str] = None) -> Patient:
        """
        Pick the admission location and run the terminal transition.
        The emergency flag is read from the stored patient, never from the caller.
        """
        patient = self.machine.load(patient_id)
        location = self.locator.locate(patient, emergency_type)
        logger.info(
            "Assigning %s patient %s to %s",
            "emergency" if patient.is_emergency else "standard", patient.id, location,
        )
        return self.machine.complete(patient.id, location)
