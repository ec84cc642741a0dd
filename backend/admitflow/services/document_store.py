from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import PersistenceError
from ..models.base import generate_uuid, utcnow
from ..models.document import Document


class DocumentStore(ABC):
    @abstractmethod
    def add(
        self,
        patient_id: Optional[str],
        file_name: str,
        file_type: str,
        analysis_result: Optional[Dict],
    ) -> Document:
        ...

    @abstractmethod
    def for_patient(self, patient_id: str) -> List[Document]:
        ...


def _new_row(patient_id, file_name, file_type, analysis_result) -> Dict:
    return {
        "id": generate_uuid(),
        "patient_id": patient_id,
        "file_name": file_name,
        "file_type": file_type,
        "analysis_result": analysis_result,
        "created_at": utcnow(),
    }


class SqlDocumentStore(DocumentStore):
    def __init__(self, db: Session):
        self.db = db

    def add(self, patient_id, file_name, file_type, analysis_result) -> Document:
        document = Document(**_new_row(patient_id, file_name, file_type, analysis_result))
        try:
            self.db.add(document)
            self.db.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("Failed to store document metadata") from exc
        return document

    def for_patient(self, patient_id: str) -> List[Document]:
        try:
            return (
                self.db.query(Document)
                .filter(Document.patient_id == patient_id)
                .order_by(Document.created_at)
                .all()
            )
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to load documents for patient {patient_id}") from exc


class InMemoryDocumentStore(DocumentStore):
    def __init__(self):
        self._rows: List[Dict] = []

    def add(self, patient_id, file_name, file_type, analysis_result) -> Document:
        row = _new_row(patient_id, file_name, file_type, analysis_result)
        self._rows.append(row)
        return Document(**row)

    def for_patient(self, patient_id: str) -> List[Document]:
        return [Document(**r) for r in self._rows if r["patient_id"] == patient_id]

    def snapshot(self) -> List[Dict]:
        return list(self._rows)

    def restore(self, snapshot: List[Dict]) -> None:
        self._rows = snapshot
