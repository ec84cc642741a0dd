"""
Units of work bundle the stores touched by one onboarding transition and make
their writes atomic: either every write inside `transaction()` lands or none.
"""
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.errors import PersistenceError
from .activity_log import ActivityLog, InMemoryActivityLog, SqlActivityLog
from .document_store import DocumentStore, InMemoryDocumentStore, SqlDocumentStore
from .patient_store import InMemoryPatientStore, PatientStore, SqlPatientStore

logger = logging.getLogger(__name__)


class UnitOfWork(ABC):
    patients: PatientStore
    activities: ActivityLog
    documents: DocumentStore

    @abstractmethod
    def transaction(self):
        ...


class SqlUnitOfWork(UnitOfWork):
    def __init__(self, db: Session):
        self.db = db
        self.patients = SqlPatientStore(db)
        self.activities = SqlActivityLog(db)
        self.documents = SqlDocumentStore(db)

    @contextmanager
    def transaction(self):
        try:
            yield self
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error("Transaction rolled back: %s", exc)
            raise PersistenceError("The patient record store is unavailable, please retry") from exc
        except Exception:
            self.db.rollback()
            raise


class InMemoryUnitOfWork(UnitOfWork):
    def __init__(self):
        self.patients = InMemoryPatientStore()
        self.activities = InMemoryActivityLog()
        self.documents = InMemoryDocumentStore()

    @contextmanager
    def transaction(self):
        saved = (
            self.patients.snapshot(),
            self.activities.snapshot(),
            self.documents.snapshot(),
        )
        try:
            yield self
        except Exception:
            self.patients.restore(saved[0])
            self.activities.restore(saved[1])
            self.documents.restore(saved[2])
            raise
