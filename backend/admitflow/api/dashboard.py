from fastapi import APIRouter, Depends

from ..services.dashboard import DashboardAggregator
from ..services.unit_of_work import UnitOfWork
from .deps import get_uow
from .schemas import ApiModel

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class DashboardStatsResponse(ApiModel):
    patients_today: int
    pending_onboarding: int
    emergency_cases: int
    completed_today: int
    total_patients: int


@router.get("/stats", response_model=DashboardStatsResponse)
def get_dashboard_stats(uow: UnitOfWork = Depends(get_uow)):
    """Staff dashboard counters, recomputed on every request."""
    return DashboardAggregator(uow.patients).stats()
