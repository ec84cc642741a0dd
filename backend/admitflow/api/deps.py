"""Request-scoped service wiring. Every request gets its own unit of work."""
from fastapi import Depends
from sqlalchemy.orm import Session

from ..core.config import settings
from ..models.base import get_db
from ..services.completion import AdmissionLocator, CompletionWorkflow
from ..services.document_analysis import DocumentAnalysisClient
from ..services.onboarding import OnboardingStateMachine
from ..services.unit_of_work import SqlUnitOfWork, UnitOfWork


def get_uow(db: Session = Depends(get_db)) -> UnitOfWork:
    return SqlUnitOfWork(db)


def get_state_machine(uow: UnitOfWork = Depends(get_uow)) -> OnboardingStateMachine:
    return OnboardingStateMachine(uow, config=settings)


def get_admission_locator() -> AdmissionLocator:
    return AdmissionLocator(config=settings)


def get_completion_workflow(
    machine: OnboardingStateMachine = Depends(get_state_machine),
    locator: AdmissionLocator = Depends(get_admission_locator),
) -> CompletionWorkflow:
    return CompletionWorkflow(machine, locator)


def get_document_client() -> DocumentAnalysisClient:
    return DocumentAnalysisClient()
