"""Hospital wayfinding directory shown after admission."""
from typing import List

from fastapi import APIRouter

from .schemas import ApiModel

router = APIRouter(prefix="/navigation", tags=["navigation"])


class Department(ApiModel):
    id: str
    name: str
    walk_time: str
    floor: str
    wing: str


DEPARTMENTS = [
    Department(id="emergency", name="Emergency Room", walk_time="2 min", floor="Ground Floor", wing="East"),
    Department(id="icu", name="ICU", walk_time="5 min", floor="Floor 3", wing="North"),
    Department(id="radiology", name="Radiology", walk_time="8 min", floor="Floor 2", wing="West"),
    Department(id="surgery", name="Surgery", walk_time="6 min", floor="Floor 4", wing="South"),
    Department(id="pharmacy", name="Pharmacy", walk_time="3 min", floor="Ground Floor", wing="Center"),
    Department(id="lab", name="Laboratory", walk_time="4 min", floor="Floor 1", wing="East"),
]


@router.get("/", response_model=List[Department])
def list_departments():
    return DEPARTMENTS
