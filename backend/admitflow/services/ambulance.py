"""
Ambulance dispatch for emergency registrations.
"""
import logging
import random
from dataclasses import dataclass, asdict
from typing import Optional

from ..core.errors import NotFoundError, ValidationError
from ..models.activity import ActivityAction
from ..models.base import generate_uuid
from .onboarding import require_patient_id
from .unit_of_work import UnitOfWork

logger = logging.getLogger(__name__)

ETA_MIN_MINUTES = 3
ETA_MAX_MINUTES = 10


@dataclass
class AmbulanceDispatch:
    dispatch_id: str
    emergency_type: str
    latitude: float
    longitude: float
    eta_minutes: int
    patient_id: Optional[str] = None
    status: str = "dispatched"

    @property
    def eta(self) -> str:
        return f"{self.eta_minutes} minutes"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["eta"] = self.eta
        return data


class AmbulanceDispatcher:
    def __init__(self, uow: UnitOfWork, rng: Optional[random.Random] = None):
        self.uow = uow
        self.rng = rng or random.Random()

    def dispatch(
        self,
        emergency_type: str,
        latitude: float,
        longitude: float,
        patient_id: Optional[str] = None,
    ) -> AmbulanceDispatch:
        if not emergency_type:
            raise ValidationError("emergencyType is required", field="emergencyType")
        if not -90.0 <= latitude <= 90.0:
            raise ValidationError("latitude must be between -90 and 90", field="latitude")
        if not -180.0 <= longitude <= 180.0:
            raise ValidationError("longitude must be between -180 and 180", field="longitude")

        with self.uow.transaction():
            if patient_id is not None:
                require_patient_id(patient_id)
                if self.uow.patients.get(patient_id) is None:
                    raise NotFoundError(patient_id)
            dispatch = AmbulanceDispatch(
                dispatch_id=generate_uuid(),
                emergency_type=emergency_type,
                latitude=latitude,
                longitude=longitude,
                eta_minutes=self.rng.randint(ETA_MIN_MINUTES, ETA_MAX_MINUTES),
                patient_id=patient_id,
            )
            # Dispatches made before the patient record exists are system-level events
            self.uow.activities.record(
                patient_id,
                ActivityAction.AMBULANCE_DISPATCHED,
                f"Ambulance dispatched for {emergency_type} emergency "
                f"at ({latitude:.4f}, {longitude:.4f}) - ETA {dispatch.eta}",
            )
        logger.info("Ambulance %s dispatched, ETA %s", dispatch.dispatch_id, dispatch.eta)
        return dispatch
