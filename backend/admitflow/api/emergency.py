from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field

from ..services.ambulance import AmbulanceDispatcher
from ..services.unit_of_work import UnitOfWork
from .deps import get_uow
from .schemas import ApiModel

router = APIRouter(prefix="/emergency", tags=["emergency"])


class AmbulanceRequest(ApiModel):
    emergency_type: str = Field(..., min_length=1)
    latitude: float
    longitude: float
    patient_id: Optional[str] = None


class AmbulanceResponse(ApiModel):
    dispatch_id: str
    emergency_type: str
    latitude: float
    longitude: float
    eta_minutes: int
    eta: str
    patient_id: Optional[str] = None
    status: str


@router.post("/ambulance", response_model=AmbulanceResponse, status_code=status.HTTP_201_CREATED)
def request_ambulance(request: AmbulanceRequest, uow: UnitOfWork = Depends(get_uow)):
    dispatch = AmbulanceDispatcher(uow).dispatch(
        request.emergency_type,
        request.latitude,
        request.longitude,
        patient_id=request.patient_id,
    )
    return dispatch.to_dict()
