"""Append-only activity log backing the staff dashboard feed."""
import itertools
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import PersistenceError, ValidationError
from ..models.activity import Activity, ActivityAction
from ..models.base import generate_uuid, utcnow

logger = logging.getLogger(__name__)


def _new_row(patient_id: Optional[str], action: str, description: str) -> Dict:
    if action not in ActivityAction.ALL:
        raise ValidationError(f"Unknown activity action: {action}", field="action")
    return {
        "id": generate_uuid(),
        "patient_id": patient_id,
        "action": action,
        "description": description,
        "created_at": utcnow(),
    }


class ActivityLog(ABC):
    @abstractmethod
    def record(self, patient_id: Optional[str], action: str, description: str) -> Activity:
        ...

    @abstractmethod
    def recent(self, limit: int = 10) -> List[Activity]:
        """Newest first."""
        ...

    @abstractmethod
    def for_patient(self, patient_id: str) -> List[Activity]:
        """Oldest first."""
        ...


class SqlActivityLog(ActivityLog):
    def __init__(self, db: Session):
        self.db = db

    def record(self, patient_id: Optional[str], action: str, description: str) -> Activity:
        activity = Activity(**_new_row(patient_id, action, description))
        try:
            self.db.add(activity)
            self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to record {action} activity") from exc
        logger.info("Activity %s for patient %s", action, patient_id or "-")
        return activity

    def recent(self, limit: int = 10) -> List[Activity]:
        try:
            return (
                self.db.query(Activity)
                .order_by(Activity.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to load activities") from exc

    def for_patient(self, patient_id: str) -> List[Activity]:
        try:
            return (
                self.db.query(Activity)
                .filter(Activity.patient_id == patient_id)
                .order_by(Activity.created_at)
                .all()
            )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load activities for patient {patient_id}") from exc


class InMemoryActivityLog(ActivityLog):
    def __init__(self):
        self._rows: List[Dict] = []
        # Insertion sequence breaks ties between identical timestamps
        self._seq = itertools.count()

    def record(self, patient_id: Optional[str], action: str, description: str) -> Activity:
        row = _new_row(patient_id, action, description)
        self._rows.append(dict(row, _seq=next(self._seq)))
        return Activity(**row)

    def _ordered(self, newest_first: bool) -> List[Dict]:
        return sorted(self._rows, key=lambda r: (r["created_at"], r["_seq"]), reverse=newest_first)

    def _to_activity(self, row: Dict) -> Activity:
        return Activity(**{k: v for k, v in row.items() if k != "_seq"})

    def recent(self, limit: int = 10) -> List[Activity]:
        return [self._to_activity(r) for r in self._ordered(newest_first=True)[:limit]]

    def for_patient(self, patient_id: str) -> List[Activity]:
        return [
            self._to_activity(r)
            for r in self._ordered(newest_first=False)
            if r["patient_id"] == patient_id
        ]

    def snapshot(self) -> List[Dict]:
        return list(self._rows)

    def restore(self, snapshot: List[Dict]) -> None:
        self._rows = snapshot
