"""Activities API: the dashboard feed."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from ..core.config import settings
from ..services.unit_of_work import UnitOfWork
from .deps import get_uow
from .schemas import ActivityResponse

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("/", response_model=List[ActivityResponse])
def list_recent_activities(
    limit: Optional[int] = Query(None, ge=1, le=100),
    uow: UnitOfWork = Depends(get_uow),
):
    """Most recent activities, newest first."""
    return uow.activities.recent(limit or settings.ACTIVITY_FEED_LIMIT)
