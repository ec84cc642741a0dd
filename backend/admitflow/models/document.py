from sqlalchemy import Column, String, DateTime, ForeignKey, JSON
from .base import Base, generate_uuid, utcnow


class Document(Base):
    """Metadata of an uploaded document. The file bytes are never persisted."""
    __tablename__ = "documents"

    id = Column(String, primary_key=True, default=generate_uuid)
    patient_id = Column(String, ForeignKey("patients.id"), nullable=True, index=True)
    file_name = Column(String(255), nullable=False)
    file_type = Column(String(100), nullable=False)
    analysis_result = Column(JSON, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
