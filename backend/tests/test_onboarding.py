"""Tests for the onboarding state machine: step sequencing, validation gating and emergency branching."""
import pytest

from admitflow.core.config import Settings
from admitflow.core.errors import (
    InvalidTransitionError,
    MissingPatientIdError,
    NotFoundError,
    OnboardingClosedError,
    PersistenceError,
    ValidationError,
)
from admitflow.models.activity import ActivityAction
from admitflow.models.patient import InsuranceStatus
from admitflow.services.onboarding import (
    OnboardingPath,
    OnboardingStateMachine,
    TRANSITIONS,
    require_patient_id,
)
from admitflow.services.unit_of_work import InMemoryUnitOfWork

JANE = {
    "firstName": "Jane",
    "lastName": "Doe",
    "dateOfBirth": "1990-01-01",
    "phone": "5551234567",
    "address": "1 Main St",
}
INSURANCE = {"insuranceProvider": "Blue Cross", "insurancePolicyNumber": "POL-123"}
UNKNOWN_ID = "00000000-0000-4000-8000-000000000000"


def _actions(uow, patient_id):
    return [a.action for a in uow.activities.for_patient(patient_id)]


# ---------------------------------------------------------------------------
# Personal information
# ---------------------------------------------------------------------------

class TestSubmitPersonal:
    def setup_method(self):
        self.uow = InMemoryUnitOfWork()
        self.machine = OnboardingStateMachine(self.uow)

    def test_creates_patient_at_step_one(self):
        patient = self.machine.submit_personal(JANE)
        assert patient.onboarding_step == 1
        assert patient.is_completed is False
        assert patient.is_emergency is False
        assert len(self.uow.patients.list()) == 1

    def test_creation_appends_one_patient_created_activity(self):
        patient = self.machine.submit_personal(JANE)
        activities = self.uow.activities.recent(limit=50)
        assert len(activities) == 1
        assert activities[0].action == ActivityAction.PATIENT_CREATED
        assert activities[0].patient_id == patient.id
        assert "Jane Doe" in activities[0].description

    def test_accepts_snake_case_keys(self):
        patient = self.machine.submit_personal({
            "first_name": "Jane",
            "last_name": "Doe",
            "date_of_birth": "1990-01-01",
            "phone": "5551234567",
            "address": "1 Main St",
        })
        assert patient.first_name == "Jane"

    def test_resubmission_updates_existing_patient(self):
        patient = self.machine.submit_personal(JANE)
        updated = self.machine.submit_personal(dict(JANE, address="2 Side St"), patient_id=patient.id)
        assert updated.id == patient.id
        assert updated.address == "2 Side St"
        assert len(self.uow.patients.list()) == 1
        assert _actions(self.uow, patient.id) == [
            ActivityAction.PATIENT_CREATED,
            ActivityAction.PATIENT_UPDATED,
        ]

    def test_update_does_not_move_step_backwards(self):
        patient = self.machine.submit_personal(JANE)
        self.machine.submit_insurance(patient.id, INSURANCE)
        updated = self.machine.submit_personal(JANE, patient_id=patient.id)
        assert updated.onboarding_step == 2

    @pytest.mark.parametrize("field", ["firstName", "lastName", "dateOfBirth", "phone", "address"])
    def test_missing_required_field_is_rejected(self, field):
        payload = {k: v for k, v in JANE.items() if k != field}
        with pytest.raises(ValidationError):
            self.machine.submit_personal(payload)
        assert self.uow.patients.list() == []
        assert self.uow.activities.recent() == []

    def test_blank_required_field_is_rejected(self):
        with pytest.raises(ValidationError):
            self.machine.submit_personal(dict(JANE, firstName="   "))

    def test_short_phone_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.machine.submit_personal(dict(JANE, phone="555"))
        assert exc_info.value.field == "phone"
        assert self.uow.patients.list() == []

    def test_protected_fields_in_payload_are_ignored(self):
        patient = self.machine.submit_personal(dict(
            JANE,
            isCompleted=True,
            admissionLocation="VIP Suite",
            onboardingStep=4,
        ))
        assert patient.is_completed is False
        assert patient.admission_location is None
        assert patient.onboarding_step == 1

    def test_emergency_flag_cannot_change_after_creation(self):
        patient = self.machine.submit_personal(JANE)
        updated = self.machine.submit_personal(dict(JANE, isEmergency=True), patient_id=patient.id)
        assert updated.is_emergency is False

    def test_update_keeps_emergency_contact_left_out_of_payload(self):
        patient = self.machine.submit_personal(dict(
            JANE,
            emergencyContactName="John Doe",
            emergencyContactPhone="5550001111",
        ))
        updated = self.machine.submit_personal(dict(JANE, address="2 Side St"), patient_id=patient.id)
        assert updated.address == "2 Side St"
        assert updated.emergency_contact_name == "John Doe"
        assert updated.emergency_contact_phone == "5550001111"

    def test_phone_minimum_comes_from_injected_settings(self):
        machine = OnboardingStateMachine(self.uow, config=Settings(PHONE_MIN_LENGTH=5))
        patient = machine.submit_personal(dict(JANE, phone="12345"))
        assert patient.phone == "12345"
        with pytest.raises(ValidationError):
            self.machine.submit_personal(dict(JANE, phone="12345"))

    def test_phone_minimum_applies_to_updates(self):
        machine = OnboardingStateMachine(self.uow, config=Settings(PHONE_MIN_LENGTH=12))
        patient = self.machine.submit_personal(JANE)
        with pytest.raises(ValidationError) as exc_info:
            machine.submit_personal(JANE, patient_id=patient.id)
        assert exc_info.value.field == "phone"


# ---------------------------------------------------------------------------
# Insurance and medical steps
# ---------------------------------------------------------------------------

class TestLaterSteps:
    def setup_method(self):
        self.uow = InMemoryUnitOfWork()
        self.machine = OnboardingStateMachine(self.uow)
        self.patient = self.machine.submit_personal(JANE)

    def test_insurance_moves_to_step_two(self):
        patient = self.machine.submit_insurance(self.patient.id, dict(INSURANCE, insuranceGroupNumber="G-9"))
        assert patient.onboarding_step == 2
        assert patient.insurance_provider == "Blue Cross"
        assert patient.insurance_group_number == "G-9"
        assert patient.insurance_status == InsuranceStatus.PENDING

    def test_insurance_requires_provider_and_policy(self):
        with pytest.raises(ValidationError):
            self.machine.submit_insurance(self.patient.id, {"insuranceProvider": "Blue Cross"})
        assert self.uow.patients.get(self.patient.id).onboarding_step == 1

    def test_medical_accepts_empty_payload(self):
        self.machine.submit_insurance(self.patient.id, INSURANCE)
        patient = self.machine.submit_medical(self.patient.id, {})
        assert patient.onboarding_step == 3

    def test_medical_stores_structured_history(self):
        self.machine.submit_insurance(self.patient.id, INSURANCE)
        patient = self.machine.submit_medical(self.patient.id, {
            "allergies": "Peanuts",
            "medications": "None",
            "medicalHistory": {"conditions": "Asthma", "familyHistory": "Diabetes"},
        })
        assert patient.allergies == "Peanuts"
        assert patient.medical_history["conditions"] == "Asthma"
        assert patient.medical_history["family_history"] == "Diabetes"

    def test_medical_keeps_fields_left_out_of_payload(self):
        self.machine.submit_insurance(self.patient.id, INSURANCE)
        self.uow.patients.update(self.patient.id, {"allergies": "Penicillin"})
        patient = self.machine.submit_medical(self.patient.id, {"medications": "Aspirin"})
        assert patient.medications == "Aspirin"
        assert patient.allergies == "Penicillin"

    def test_insurance_resubmission_keeps_group_number(self):
        self.machine.submit_insurance(self.patient.id, dict(INSURANCE, insuranceGroupNumber="G-9"))
        patient = self.machine.submit_insurance(self.patient.id, dict(INSURANCE, insuranceProvider="Aetna"))
        assert patient.insurance_provider == "Aetna"
        assert patient.insurance_group_number == "G-9"

    def test_explicit_null_clears_optional_field(self):
        self.machine.submit_insurance(self.patient.id, INSURANCE)
        self.machine.submit_medical(self.patient.id, {"allergies": "Peanuts"})
        patient = self.machine.submit_medical(self.patient.id, {"allergies": None})
        assert patient.allergies is None

    def test_medical_before_insurance_is_rejected(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            self.machine.submit_medical(self.patient.id, {})
        assert exc_info.value.current_step == 1
        assert exc_info.value.target_step == 3

    def test_step_sequence_on_standard_path(self):
        steps = [self.patient.onboarding_step]
        steps.append(self.machine.submit_insurance(self.patient.id, INSURANCE).onboarding_step)
        steps.append(self.machine.submit_medical(self.patient.id, {}).onboarding_step)
        steps.append(self.machine.complete(self.patient.id, "Ward 3").onboarding_step)
        assert steps == [1, 2, 3, 4]

    def test_each_step_appends_exactly_one_activity(self):
        self.machine.submit_insurance(self.patient.id, INSURANCE)
        self.machine.submit_medical(self.patient.id, {})
        assert _actions(self.uow, self.patient.id) == [
            ActivityAction.PATIENT_CREATED,
            ActivityAction.PATIENT_UPDATED,
            ActivityAction.PATIENT_UPDATED,
        ]


# ---------------------------------------------------------------------------
# Patient id preconditions
# ---------------------------------------------------------------------------

class TestPatientIdPreconditions:
    def setup_method(self):
        self.uow = InMemoryUnitOfWork()
        self.machine = OnboardingStateMachine(self.uow)

    @pytest.mark.parametrize("patient_id", [None, "", "undefined", "null", "not-a-uuid"])
    def test_missing_or_malformed_id_redirects_to_first_step(self, patient_id):
        with pytest.raises(MissingPatientIdError) as exc_info:
            self.machine.submit_insurance(patient_id, INSURANCE)
        assert exc_info.value.redirect_to == "/onboarding/personal"
        assert exc_info.value.to_payload()["redirectTo"] == "/onboarding/personal"

    def test_missing_id_does_not_mutate_anything(self):
        patient = self.machine.submit_personal(JANE)
        for call in (
            lambda: self.machine.submit_insurance(None, INSURANCE),
            lambda: self.machine.submit_medical("undefined", {}),
            lambda: self.machine.complete("", "Ward 3"),
        ):
            with pytest.raises(MissingPatientIdError):
                call()
        assert len(self.uow.activities.recent(limit=50)) == 1
        assert self.uow.patients.get(patient.id).onboarding_step == 1

    def test_unknown_id_is_not_found(self):
        with pytest.raises(NotFoundError):
            self.machine.submit_insurance(UNKNOWN_ID, INSURANCE)
        with pytest.raises(NotFoundError):
            self.machine.complete(UNKNOWN_ID, "Ward 3")
        assert self.uow.activities.recent() == []

    def test_require_patient_id_returns_valid_id(self):
        assert require_patient_id(UNKNOWN_ID) == UNKNOWN_ID


# ---------------------------------------------------------------------------
# Completion transition
# ---------------------------------------------------------------------------

class TestComplete:
    def setup_method(self):
        self.uow = InMemoryUnitOfWork()
        self.machine = OnboardingStateMachine(self.uow)

    def test_jane_doe_scenario(self):
        patient = self.machine.submit_personal(JANE)
        assert patient.onboarding_step == 1
        assert patient.is_completed is False

        done = self.machine.complete(patient.id, "General Admission - Room 204B")
        assert done.is_completed is True
        assert done.admission_location == "General Admission - Room 204B"
        assert len(self.uow.activities.recent(limit=50)) == 2

    def test_complete_refreshes_updated_at(self):
        patient = self.machine.submit_personal(JANE)
        done = self.machine.complete(patient.id, "Ward 3")
        assert done.updated_at >= patient.updated_at
        assert done.created_at == patient.created_at

    def test_completed_activity_names_location(self):
        patient = self.machine.submit_personal(JANE)
        self.machine.complete(patient.id, "Ward 3")
        latest = self.uow.activities.recent(limit=1)[0]
        assert latest.action == ActivityAction.ONBOARDING_COMPLETED
        assert latest.description == "Onboarding completed for Jane Doe - admitted to Ward 3"

    def test_complete_twice_appends_two_activities(self):
        patient = self.machine.submit_personal(JANE)
        self.machine.complete(patient.id, "Ward 3")
        done = self.machine.complete(patient.id, "Ward 3")
        assert done.admission_location == "Ward 3"
        completed = [
            a for a in self.uow.activities.for_patient(patient.id)
            if a.action == ActivityAction.ONBOARDING_COMPLETED
        ]
        assert len(completed) == 2

    def test_racing_completions_last_write_wins(self):
        """Two tabs completing the same patient: both activities are kept, the last location sticks."""
        patient = self.machine.submit_personal(JANE)
        other_tab = OnboardingStateMachine(self.uow)
        self.machine.complete(patient.id, "Ward 3")
        other_tab.complete(patient.id, "Ward 5")
        assert self.uow.patients.get(patient.id).admission_location == "Ward 5"
        assert _actions(self.uow, patient.id).count(ActivityAction.ONBOARDING_COMPLETED) == 2

    def test_blank_location_is_rejected(self):
        patient = self.machine.submit_personal(JANE)
        with pytest.raises(ValidationError):
            self.machine.complete(patient.id, "  ")
        assert self.uow.patients.get(patient.id).is_completed is False

    def test_earlier_steps_are_closed_after_completion(self):
        patient = self.machine.submit_personal(JANE)
        self.machine.complete(patient.id, "Ward 3")
        with pytest.raises(OnboardingClosedError):
            self.machine.submit_insurance(patient.id, INSURANCE)
        with pytest.raises(OnboardingClosedError):
            self.machine.submit_medical(patient.id, {})
        with pytest.raises(OnboardingClosedError):
            self.machine.submit_personal(JANE, patient_id=patient.id)
        stored = self.uow.patients.get(patient.id)
        assert stored.is_completed is True
        assert stored.insurance_provider is None

    def test_failed_activity_append_rolls_back_completion(self, monkeypatch):
        patient = self.machine.submit_personal(JANE)

        def _unavailable(*args, **kwargs):
            raise PersistenceError("activity log unavailable")

        monkeypatch.setattr(self.uow.activities, "record", _unavailable)
        with pytest.raises(PersistenceError):
            self.machine.complete(patient.id, "Ward 3")
        stored = self.uow.patients.get(patient.id)
        assert stored.is_completed is False
        assert stored.admission_location is None


# ---------------------------------------------------------------------------
# Emergency path
# ---------------------------------------------------------------------------

class TestEmergencyPath:
    def setup_method(self):
        self.uow = InMemoryUnitOfWork()
        self.machine = OnboardingStateMachine(self.uow)

    def test_emergency_patient_skips_insurance_and_medical(self):
        patient = self.machine.submit_personal(JANE, is_emergency=True, emergency_type="trauma")
        with pytest.raises(InvalidTransitionError):
            self.machine.submit_insurance(patient.id, INSURANCE)
        with pytest.raises(InvalidTransitionError):
            self.machine.submit_medical(patient.id, {})
        assert self.uow.patients.get(patient.id).onboarding_step == 1

    def test_step_sequence_on_emergency_path(self):
        patient = self.machine.submit_personal(JANE, is_emergency=True, emergency_type="cardiac")
        done = self.machine.complete(patient.id, "Cardiac Care Unit - Floor 2, East Wing")
        assert [patient.onboarding_step, done.onboarding_step] == [1, 2]
        assert done.emergency_type == "cardiac"

    def test_emergency_type_ignored_on_standard_path(self):
        patient = self.machine.submit_personal(JANE, emergency_type="cardiac")
        assert patient.emergency_type is None

    def test_unknown_emergency_type_is_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            self.machine.submit_personal(JANE, is_emergency=True, emergency_type="alien")
        assert exc_info.value.field == "emergencyType"
        assert self.uow.patients.list() == []
        assert self.uow.activities.recent() == []

    def test_emergency_type_is_normalised(self):
        patient = self.machine.submit_personal(JANE, is_emergency=True, emergency_type=" Cardiac ")
        assert patient.emergency_type == "cardiac"

    def test_blank_emergency_type_is_stored_as_none(self):
        patient = self.machine.submit_personal(JANE, is_emergency=True, emergency_type="  ")
        assert patient.emergency_type is None

    def test_emergency_path_has_no_insurance_transition(self):
        assert set(TRANSITIONS[OnboardingPath.EMERGENCY]) == {"personal", "complete"}

    def test_identity_required_by_default(self):
        with pytest.raises(ValidationError):
            self.machine.submit_personal({}, is_emergency=True)

    def test_placeholders_when_identity_collection_disabled(self):
        machine = OnboardingStateMachine(self.uow, config=Settings(EMERGENCY_COLLECT_IDENTITY=False))
        patient = machine.submit_personal({"phone": "5559876543"}, is_emergency=True, emergency_type="trauma")
        assert patient.full_name == "Emergency Patient"
        assert patient.date_of_birth == "Unknown"
        assert patient.address == "Unknown"
        assert patient.phone == "5559876543"

    def test_standard_path_still_requires_identity_when_collection_disabled(self):
        machine = OnboardingStateMachine(self.uow, config=Settings(EMERGENCY_COLLECT_IDENTITY=False))
        with pytest.raises(ValidationError):
            machine.submit_personal({})


# ---------------------------------------------------------------------------
# State view
# ---------------------------------------------------------------------------

class TestOnboardingState:
    def setup_method(self):
        self.uow = InMemoryUnitOfWork()
        self.machine = OnboardingStateMachine(self.uow)

    def test_new_standard_patient_goes_to_insurance(self):
        patient = self.machine.submit_personal(JANE)
        state = self.machine.state(patient.id)
        assert state.path == OnboardingPath.STANDARD
        assert state.current_step == 1
        assert state.next_step == 2
        assert state.next_route == "/onboarding/insurance"
        assert state.steps == [1, 2, 3, 4]

    def test_emergency_patient_goes_to_confirmation(self):
        patient = self.machine.submit_personal(JANE, is_emergency=True)
        state = self.machine.state(patient.id)
        assert state.path == OnboardingPath.EMERGENCY
        assert state.next_step == 2
        assert state.next_route == "/onboarding/confirmation"
        assert state.steps == [1, 2]

    def test_completed_patient_has_no_next_step(self):
        patient = self.machine.submit_personal(JANE)
        self.machine.complete(patient.id, "Ward 3")
        state = self.machine.state(patient.id)
        assert state.is_completed is True
        assert state.next_step is None
        assert state.next_route == "/onboarding/confirmation"
