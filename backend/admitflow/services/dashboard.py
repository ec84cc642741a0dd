"""
Dashboard statistics - recomputed from the patient store on every call.
"""
from dataclasses import dataclass, asdict
from datetime import datetime, time
from typing import Optional

from ..models.base import utcnow
from .patient_store import PatientStore


@dataclass
class DashboardStats:
    patients_today: int = 0
    pending_onboarding: int = 0
    emergency_cases: int = 0
    completed_today: int = 0
    total_patients: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


class DashboardAggregator:
    def __init__(self, patients: PatientStore):
        self.patients = patients

    def stats(self, now: Optional[datetime] = None) -> DashboardStats:
        """
        Counts over the whole store. "Today" starts at 00:00 UTC of `now`;
        completed_today uses updated_at since completion is the last write.
        """
        start_of_day = datetime.combine((now or utcnow()).date(), time.min)
        result = DashboardStats()
        for patient in self.patients.list():
            result.total_patients += 1
            if patient.created_at and patient.created_at >= start_of_day:
                result.patients_today += 1
            if patient.is_emergency:
                result.emergency_cases += 1
            if patient.is_completed:
                if patient.updated_at and patient.updated_at >= start_of_day:
                    result.completed_today += 1
            else:
                result.pending_onboarding += 1
        return result
