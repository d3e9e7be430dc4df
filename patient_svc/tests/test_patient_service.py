"""
Tests for PatientService business rules.

These run against a real temporary database; collaborators are mocked only
where a test needs to force an interleaving or a failure.
"""
from unittest.mock import MagicMock, patch

import pytest

from conftest import make_update_payload
from core.exceptions import (
    EmailConflictError,
    PatientNotFoundError,
    PatientValidationError,
)
from schemas import PatientCreate, PatientUpdate
from services import PatientEvent, PatientEventPublisher, PatientService


def _update(**overrides):
    return PatientUpdate(**make_update_payload(**overrides))


# =============================================================================
# CREATE
# =============================================================================

class TestCreatePatient:

    def test_create_assigns_id_and_trims_fields(self, patient_service, patient_repo, create_request):
        created = patient_service.create_patient(
            create_request(name="  John Doe ", email=" john.doe@example.com ")
        )

        assert created.id
        assert created.name == "John Doe"
        assert created.email == "john.doe@example.com"

        stored = patient_repo.find_by_id(created.id)
        assert stored.registered_date.isoformat() == "2025-09-13"
        assert stored.created_at is not None

    def test_ids_are_unique(self, patient_service, create_request):
        first = patient_service.create_patient(create_request(email="a@example.com"))
        second = patient_service.create_patient(create_request(email="b@example.com"))
        assert first.id != second.id

    def test_invalid_payload_raises_with_all_errors(self, patient_service, patient_repo):
        with pytest.raises(PatientValidationError) as exc_info:
            patient_service.create_patient(PatientCreate())

        assert set(exc_info.value.errors) == {
            "name", "email", "address", "dateOfBirth", "registeredDate"
        }
        assert patient_repo.find_all() == []

    def test_duplicate_email_rejected_by_precheck(self, patient_service, patient_repo, create_request):
        patient_service.create_patient(create_request())

        with pytest.raises(EmailConflictError) as exc_info:
            patient_service.create_patient(create_request(name="Someone Else"))

        assert exc_info.value.status_code == 409
        assert len(patient_repo.find_all()) == 1

    def test_email_conflict_ignores_domain_case(self, patient_service, patient_repo, create_request):
        patient_service.create_patient(create_request(email="john.doe@example.com"))

        with pytest.raises(EmailConflictError) as exc_info:
            patient_service.create_patient(create_request(email="john.doe@EXAMPLE.com"))

        assert exc_info.value.context["email"] == "john.doe@example.com"
        assert len(patient_repo.find_all()) == 1

    def test_store_constraint_catches_race_past_precheck(self, patient_service, patient_repo, create_request):
        """Two writers both pass the pre-check; the store rejects the second."""
        patient_service.create_patient(create_request())

        with patch.object(patient_repo, "exists_by_email", return_value=False):
            with pytest.raises(EmailConflictError):
                patient_service.create_patient(create_request(name="Racing Writer"))

        assert [p.name for p in patient_repo.find_all()] == ["John Doe"]


# =============================================================================
# READ
# =============================================================================

class TestReadPatients:

    def test_list_in_insertion_order(self, patient_service, create_request):
        for name, email in [("C", "c@example.com"), ("A", "a@example.com"), ("B", "b@example.com")]:
            patient_service.create_patient(create_request(name=name, email=email))

        assert [p.name for p in patient_service.list_patients()] == ["C", "A", "B"]

    def test_get_unknown_patient(self, patient_service):
        with pytest.raises(PatientNotFoundError) as exc_info:
            patient_service.get_patient("nope")
        assert exc_info.value.patient_id == "nope"


# =============================================================================
# UPDATE
# =============================================================================

class TestUpdatePatient:

    def test_update_preserves_id_and_registered_date(self, patient_service, patient_repo, create_request):
        created = patient_service.create_patient(create_request())

        updated = patient_service.update_patient(
            created.id, _update(name="John Q. Doe", dateOfBirth="1991-01-02")
        )

        assert updated.id == created.id
        assert updated.name == "John Q. Doe"
        stored = patient_repo.find_by_id(created.id)
        assert stored.date_of_birth.isoformat() == "1991-01-02"
        assert stored.registered_date.isoformat() == "2025-09-13"

    def test_update_unknown_patient(self, patient_service):
        with pytest.raises(PatientNotFoundError):
            patient_service.update_patient("missing", _update())

    def test_update_invalid_payload(self, patient_service, patient_repo, create_request):
        created = patient_service.create_patient(create_request())

        with pytest.raises(PatientValidationError) as exc_info:
            patient_service.update_patient(created.id, _update(email="broken"))

        assert list(exc_info.value.errors) == ["email"]
        assert patient_repo.find_by_id(created.id).email == "john.doe@example.com"

    def test_update_same_email_skips_lookup(self, patient_service, patient_repo, create_request):
        created = patient_service.create_patient(create_request())

        with patch.object(patient_repo, "find_by_email", wraps=patient_repo.find_by_email) as lookup:
            patient_service.update_patient(created.id, _update())

        lookup.assert_not_called()

    def test_update_to_taken_email(self, patient_service, create_request):
        patient_service.create_patient(create_request(email="taken@example.com"))
        other = patient_service.create_patient(create_request(email="mine@example.com"))

        with pytest.raises(EmailConflictError):
            patient_service.update_patient(other.id, _update(email="taken@example.com"))

    def test_update_race_caught_by_store(self, patient_service, patient_repo, create_request):
        patient_service.create_patient(create_request(email="taken@example.com"))
        other = patient_service.create_patient(create_request(email="mine@example.com"))

        with patch.object(patient_repo, "find_by_email", return_value=None):
            with pytest.raises(EmailConflictError):
                patient_service.update_patient(other.id, _update(email="taken@example.com"))

        assert patient_repo.find_by_id(other.id).email == "mine@example.com"

    def test_update_deleted_between_read_and_write(self, patient_service, patient_repo, create_request):
        created = patient_service.create_patient(create_request())

        with patch.object(patient_repo, "update", return_value=False):
            with pytest.raises(PatientNotFoundError):
                patient_service.update_patient(created.id, _update(name="Gone"))


# =============================================================================
# DELETE
# =============================================================================

class TestDeletePatient:

    def test_delete(self, patient_service, patient_repo, create_request):
        created = patient_service.create_patient(create_request())

        patient_service.delete_patient(created.id)

        assert patient_repo.find_by_id(created.id) is None

    def test_delete_unknown(self, patient_service):
        with pytest.raises(PatientNotFoundError):
            patient_service.delete_patient("missing")


# =============================================================================
# EVENTS
# =============================================================================

class TestPatientEvents:

    @pytest.fixture
    def dispatch(self):
        return MagicMock()

    @pytest.fixture
    def service_with_events(self, patient_repo, dispatch):
        return PatientService(
            patient_repository=patient_repo,
            event_publisher=PatientEventPublisher(dispatch=dispatch)
        )

    def test_lifecycle_publishes_one_event_per_change(self, service_with_events, dispatch, create_request):
        created = service_with_events.create_patient(create_request())
        service_with_events.update_patient(created.id, _update(name="Renamed"))
        service_with_events.delete_patient(created.id)

        events = [call.args[0] for call in dispatch.call_args_list]
        assert [e["event"] for e in events] == [
            PatientEvent.CREATED.value,
            PatientEvent.UPDATED.value,
            PatientEvent.DELETED.value,
        ]
        assert all(e["patient_id"] == created.id for e in events)
        assert events[0]["patient"]["registeredDate"] == "2025-09-13"
        assert events[1]["patient"]["name"] == "Renamed"
        assert "patient" not in events[2]

    def test_rejected_writes_publish_nothing(self, service_with_events, dispatch, create_request):
        service_with_events.create_patient(create_request())
        dispatch.reset_mock()

        with pytest.raises(EmailConflictError):
            service_with_events.create_patient(create_request())
        with pytest.raises(PatientNotFoundError):
            service_with_events.delete_patient("missing")

        dispatch.assert_not_called()

    def test_dispatch_failure_does_not_fail_write(self, patient_repo, create_request):
        publisher = PatientEventPublisher(dispatch=MagicMock(side_effect=ConnectionError("broker down")))
        service = PatientService(patient_repository=patient_repo, event_publisher=publisher)

        created = service.create_patient(create_request())

        assert patient_repo.find_by_id(created.id) is not None
