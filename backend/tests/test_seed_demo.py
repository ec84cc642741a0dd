"""Tests for the demo data seeder."""
import pytest
from sqlalchemy.orm import sessionmaker

from admitflow.models.activity import Activity, ActivityAction
from admitflow.models.patient import Patient
from admitflow.seed_demo import seed_demo_data, DEMO_PATIENTS
from admitflow.services.completion import CARDIAC_CARE_UNIT


@pytest.fixture()
def seeded_db(sql_engine, monkeypatch):
    """Point the seeder at the per-test database."""
    TestSession = sessionmaker(autocommit=False, autoflush=False, bind=sql_engine)

    import admitflow.seed_demo as sd

    monkeypatch.setattr(sd, "engine", sql_engine)
    monkeypatch.setattr(sd, "SessionLocal", TestSession)

    db = TestSession()
    yield db
    db.close()


class TestSeedDemoData:
    def test_creates_demo_patients(self, seeded_db):
        seed_demo_data()
        assert seeded_db.query(Patient).count() == len(DEMO_PATIENTS)

    def test_completed_standard_patient(self, seeded_db):
        seed_demo_data()
        maria = seeded_db.query(Patient).filter(Patient.first_name == "Maria").one()
        assert maria.is_completed is True
        assert maria.onboarding_step == 4
        assert maria.admission_location == "General Admission - Room 204B"

    def test_in_progress_patient(self, seeded_db):
        seed_demo_data()
        james = seeded_db.query(Patient).filter(Patient.first_name == "James").one()
        assert james.is_completed is False
        assert james.onboarding_step == 2

    def test_emergency_patient_goes_to_cardiac_unit(self, seeded_db):
        seed_demo_data()
        robert = seeded_db.query(Patient).filter(Patient.first_name == "Robert").one()
        assert robert.is_emergency is True
        assert robert.admission_location == CARDIAC_CARE_UNIT

    def test_activities_are_recorded_through_the_state_machine(self, seeded_db):
        seed_demo_data()
        created = seeded_db.query(Activity).filter(Activity.action == ActivityAction.PATIENT_CREATED).count()
        completed = seeded_db.query(Activity).filter(Activity.action == ActivityAction.ONBOARDING_COMPLETED).count()
        assert created == 3
        assert completed == 2

    def test_idempotent(self, seeded_db):
        seed_demo_data()
        seed_demo_data()
        assert seeded_db.query(Patient).count() == len(DEMO_PATIENTS)
        assert seeded_db.query(Activity).count() == 8
