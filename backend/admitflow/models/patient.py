from sqlalchemy import Column, String, Text, Boolean, Integer, JSON
from .base import Base, TimestampMixin, generate_uuid


class InsuranceStatus:
    PENDING = "pending"
    VERIFIED = "verified"

    ALL = [PENDING, VERIFIED]


class EmergencyType:
    CARDIAC = "cardiac"
    TRAUMA = "trauma"
    RESPIRATORY = "respiratory"
    NEUROLOGICAL = "neurological"
    PEDIATRIC = "pediatric"
    OBSTETRIC = "obstetric"
    GENERAL = "general"

    ALL = [CARDIAC, TRAUMA, RESPIRATORY, NEUROLOGICAL, PEDIATRIC, OBSTETRIC, GENERAL]


class Patient(Base, TimestampMixin):
    __tablename__ = "patients"

    id = Column(String, primary_key=True, default=generate_uuid)

    # Demographics - required once step 1 is submitted
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(String(20), nullable=False)  # ISO date as entered by the patient
    phone = Column(String(30), nullable=False)
    address = Column(String(300), nullable=False)

    emergency_contact_name = Column(String(200), nullable=True)
    emergency_contact_relationship = Column(String(100), nullable=True)
    emergency_contact_phone = Column(String(30), nullable=True)

    # Standard path only
    insurance_provider = Column(String(200), nullable=True)
    insurance_policy_number = Column(String(100), nullable=True)
    insurance_group_number = Column(String(100), nullable=True)
    insurance_status = Column(String(20), nullable=True)

    allergies = Column(Text, nullable=True)
    medications = Column(Text, nullable=True)
    medical_history = Column(JSON, nullable=True)  # {conditions, surgeries, family_history}

    onboarding_step = Column(Integer, nullable=False, default=1)
    is_completed = Column(Boolean, nullable=False, default=False)
    is_emergency = Column(Boolean, nullable=False, default=False)  # Fixed at creation
    emergency_type = Column(String(50), nullable=True)

    admission_location = Column(String(200), nullable=True)  # Set only at completion

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"
