import logging
from dataclasses import replace
from datetime import date

import pytest

from src.clinic.domain.models.encounter import EncounterStatus
from src.clinic.domain.models.user import UserRole
from src.clinic.errors import Conflict, NotFound, ValidationError
from src.clinic.infra.db.bootstrap import build_inmemory, build_repositories, build_sql
from src.clinic.infra.db.inmemory import InMemoryUserRepository
from src.clinic.infra.db.sql_repositories import SqlUserRepository


@pytest.fixture(params=["inmemory", "sql"])
def repos(request):
    if request.param == "sql":
        return build_sql("sqlite://")
    return build_inmemory()


def _user(repos, email="ann@clinic.example.com", role=UserRole.PROVIDER):
    return repos.users.create({"name": "Ann", "email": email, "role": role, "password_hash": "x"})


def _patient(repos, mrn="MRN-1"):
    return repos.patients.create({"mrn": mrn, "name": "Pat", "dob": date(1990, 1, 2), "phone": None, "email": None})


def _encounter(repos, patient_id, provider_id, status=EncounterStatus.DRAFT):
    return repos.encounters.create(
        {
            "patient_id": patient_id,
            "provider_id": provider_id,
            "chief_complaint": "Headache",
            "vitals": {"hr": 70},
            "status": status,
        }
    )


def test_user_email_is_unique(repos):
    first = _user(repos)
    with pytest.raises(Conflict) as excinfo:
        _user(repos)
    assert excinfo.value.field == "email"

    other = _user(repos, email="other@clinic.example.com")
    with pytest.raises(Conflict):
        repos.users.update(other.id, {"email": first.email})

    # Re-saving your own email is not a conflict.
    assert repos.users.update(first.id, {"email": first.email}).email == first.email


def test_user_lookup_and_filters(repos):
    provider = _user(repos)
    _user(repos, email="bill@clinic.example.com", role=UserRole.BILLER)

    assert repos.users.get_by_email(provider.email).id == provider.id
    assert repos.users.get_by_email("nobody@clinic.example.com") is None
    assert [u.role for u in repos.users.list_by_filters(role=UserRole.BILLER)] == [UserRole.BILLER]
    assert len(list(repos.users.list_by_filters())) == 2


def test_update_missing_record_raises_not_found(repos):
    with pytest.raises(NotFound):
        repos.users.update(404, {"name": "Ghost"})
    with pytest.raises(NotFound):
        repos.patients.update(404, {"name": "Ghost"})
    with pytest.raises(NotFound):
        repos.encounters.update(404, {"status": EncounterStatus.FINAL})


def test_delete_reports_affected_count(repos):
    patient = _patient(repos)
    assert repos.patients.delete(patient.id) == 1
    assert repos.patients.delete(patient.id) == 0
    assert repos.patients.get(patient.id) is None


def test_patient_mrn_is_unique(repos):
    _patient(repos)
    with pytest.raises(Conflict) as excinfo:
        _patient(repos)
    assert excinfo.value.field == "mrn"


def test_partial_patient_update_keeps_other_fields(repos):
    patient = _patient(repos)
    updated = repos.patients.update(patient.id, {"phone": "555-0100"})
    assert updated.phone == "555-0100"
    assert updated.mrn == patient.mrn
    assert updated.dob == date(1990, 1, 2)


def test_encounter_references_must_exist(repos):
    provider = _user(repos)
    with pytest.raises(ValidationError) as excinfo:
        _encounter(repos, patient_id=999, provider_id=provider.id)
    assert "patientId" in excinfo.value.fields


def test_patient_delete_cascades_to_encounters(repos):
    provider = _user(repos)
    patient = _patient(repos)
    encounter = _encounter(repos, patient.id, provider.id)

    repos.patients.delete(patient.id)

    assert repos.encounters.get(encounter.id) is None
    assert list(repos.encounters.list_by_filters(patient_id=patient.id)) == []


def test_referenced_provider_cannot_be_deleted(repos):
    provider = _user(repos)
    patient = _patient(repos)
    _encounter(repos, patient.id, provider.id)

    with pytest.raises(Conflict) as excinfo:
        repos.users.delete(provider.id)
    assert excinfo.value.field == "providerId"
    assert repos.users.get(provider.id) is not None


def test_encounter_filters_and_status_round_trip(repos):
    provider = _user(repos)
    first = _patient(repos, mrn="MRN-1")
    second = _patient(repos, mrn="MRN-2")
    _encounter(repos, first.id, provider.id)
    billed = _encounter(repos, second.id, provider.id, status=EncounterStatus.BILLED)

    assert [e.id for e in repos.encounters.list_by_filters(status=EncounterStatus.BILLED)] == [billed.id]
    assert [e.id for e in repos.encounters.list_by_filters(patient_id=second.id)] == [billed.id]
    assert len(list(repos.encounters.list_by_filters(provider_id=provider.id))) == 2

    stored = repos.encounters.get(billed.id)
    assert stored.status is EncounterStatus.BILLED
    assert stored.vitals == {"hr": 70}


def test_returned_records_are_copies(repos):
    provider = _user(repos)
    patient = _patient(repos)
    encounter = _encounter(repos, patient.id, provider.id)

    encounter.vitals["hr"] = 200

    assert repos.encounters.get(encounter.id).vitals == {"hr": 70}


def test_build_repositories_follows_settings(settings):
    assert isinstance(build_repositories(settings).users, InMemoryUserRepository)

    sql_settings = replace(settings, use_sql_repos=True, database_url="sqlite://")
    assert isinstance(build_repositories(sql_settings).users, SqlUserRepository)

    # SQL requested without a URL falls back to memory.
    no_url = replace(settings, use_sql_repos=True, database_url=None)
    assert isinstance(build_repositories(no_url).users, InMemoryUserRepository)


def test_conflicts_and_missing_records_are_logged_at_debug(repos, caplog):
    caplog.set_level(logging.DEBUG, logger="src.clinic.infra.db")
    _user(repos)
    _patient(repos)

    with pytest.raises(Conflict):
        _user(repos)
    with pytest.raises(Conflict):
        _patient(repos)
    with pytest.raises(NotFound):
        repos.patients.update(404, {"name": "Ghost"})

    messages = [record.getMessage() for record in caplog.records if record.levelno == logging.DEBUG]
    assert "Duplicate user email rejected" in messages
    assert "Duplicate patient MRN rejected" in messages
    assert "No patient with id 404 to update" in messages
