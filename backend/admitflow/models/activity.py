from sqlalchemy import Column, String, Text, DateTime, ForeignKey
from .base import Base, generate_uuid, utcnow


class ActivityAction:
    PATIENT_CREATED = "patient_created"
    PATIENT_UPDATED = "patient_updated"
    DOCUMENT_UPLOADED = "document_uploaded"
    ONBOARDING_COMPLETED = "onboarding_completed"
    AMBULANCE_DISPATCHED = "ambulance_dispatched"

    ALL = [
        PATIENT_CREATED, PATIENT_UPDATED, DOCUMENT_UPLOADED,
        ONBOARDING_COMPLETED, AMBULANCE_DISPATCHED,
    ]


class Activity(Base):
    """Append-only audit event for a single onboarding transition."""
    __tablename__ = "activities"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=True, index=True)  # Null for system-level events
    action = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
