from __future__ import annotations

import logging
from datetime import datetime, timezone
from itertools import count
from threading import Lock
from typing import Any, Dict, Iterable, Mapping, Optional

from src.clinic.domain.models.encounter import Encounter, EncounterStatus
from src.clinic.domain.models.patient import Patient
from src.clinic.domain.models.user import User, UserRole
from src.clinic.errors import Conflict, NotFound, ValidationError
from src.clinic.infra.db.repositories import (
    EncounterRepository,
    PatientRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


class InMemoryStore:
    """Process-local tables shared by the in-memory repositories.

    One lock guards all three tables so that the cross-table rules
    (encounter foreign keys, patient cascade, provider restrict) see a
    consistent view. Intended for tests and local development.
    """

    def __init__(self) -> None:
        self.lock = Lock()
        self.users: Dict[int, User] = {}
        self.patients: Dict[int, Patient] = {}
        self.encounters: Dict[int, Encounter] = {}
        self._ids = {"users": count(1), "patients": count(1), "encounters": count(1)}

    def next_id(self, table: str) -> int:
        return next(self._ids[table])


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryUserRepository(UserRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create(self, fields: Mapping[str, Any]) -> User:
        with self._store.lock:
            self._ensure_unique_email(fields["email"])
            now = _now()
            user = User(id=self._store.next_id("users"), created_at=now, updated_at=now, **fields)
            self._store.users[user.id] = user
            return user.model_copy()

    def get(self, record_id: int) -> Optional[User]:
        user = self._store.users.get(record_id)
        return user.model_copy() if user is not None else None

    def get_by_email(self, email: str) -> Optional[User]:
        for user in list(self._store.users.values()):
            if user.email == email:
                return user.model_copy()
        return None

    def list_by_filters(self, *, role: Optional[UserRole] = None) -> Iterable[User]:
        for user in list(self._store.users.values()):
            if role is not None and user.role != role:
                continue
            yield user.model_copy()

    def update(self, record_id: int, fields: Mapping[str, Any]) -> User:
        with self._store.lock:
            existing = self._store.users.get(record_id)
            if existing is None:
                logger.debug("No user with id %s to update", record_id)
                raise NotFound("user")
            if "email" in fields:
                self._ensure_unique_email(fields["email"], exclude_id=record_id)
            updated = existing.model_copy(update={**fields, "updated_at": _now()})
            self._store.users[record_id] = updated
            return updated.model_copy()

    def delete(self, record_id: int) -> int:
        with self._store.lock:
            if record_id not in self._store.users:
                return 0
            if any(enc.provider_id == record_id for enc in self._store.encounters.values()):
                logger.debug("Refusing to delete user %s: referenced by encounters", record_id)
                raise Conflict("providerId", "user is the provider on existing encounters")
            del self._store.users[record_id]
            return 1

    def _ensure_unique_email(self, email: str, exclude_id: Optional[int] = None) -> None:
        for user in self._store.users.values():
            if user.id != exclude_id and user.email == email:
                logger.debug("Duplicate user email rejected")
                raise Conflict("email", "email already in use")


class InMemoryPatientRepository(PatientRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create(self, fields: Mapping[str, Any]) -> Patient:
        with self._store.lock:
            self._ensure_unique_mrn(fields["mrn"])
            now = _now()
            patient = Patient(id=self._store.next_id("patients"), created_at=now, updated_at=now, **fields)
            self._store.patients[patient.id] = patient
            return patient.model_copy()

    def get(self, record_id: int) -> Optional[Patient]:
        patient = self._store.patients.get(record_id)
        return patient.model_copy() if patient is not None else None

    def list_by_filters(self, *, mrn: Optional[str] = None) -> Iterable[Patient]:
        for patient in list(self._store.patients.values()):
            if mrn is not None and patient.mrn != mrn:
                continue
            yield patient.model_copy()

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Patient:
        with self._store.lock:
            existing = self._store.patients.get(record_id)
            if existing is None:
                logger.debug("No patient with id %s to update", record_id)
                raise NotFound("patient")
            if "mrn" in fields:
                self._ensure_unique_mrn(fields["mrn"], exclude_id=record_id)
            updated = existing.model_copy(update={**fields, "updated_at": _now()})
            self._store.patients[record_id] = updated
            return updated.model_copy()

    def delete(self, record_id: int) -> int:
        with self._store.lock:
            if self._store.patients.pop(record_id, None) is None:
                return 0
            # ON DELETE CASCADE for the patient's encounters.
            orphaned = [enc_id for enc_id, enc in self._store.encounters.items() if enc.patient_id == record_id]
            for enc_id in orphaned:
                del self._store.encounters[enc_id]
            return 1

    def _ensure_unique_mrn(self, mrn: str, exclude_id: Optional[int] = None) -> None:
        for patient in self._store.patients.values():
            if patient.id != exclude_id and patient.mrn == mrn:
                logger.debug("Duplicate patient MRN rejected")
                raise Conflict("mrn", "mrn already in use")


class InMemoryEncounterRepository(EncounterRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def create(self, fields: Mapping[str, Any]) -> Encounter:
        with self._store.lock:
            self._ensure_references(fields)
            now = _now()
            encounter = Encounter(id=self._store.next_id("encounters"), created_at=now, updated_at=now, **fields)
            self._store.encounters[encounter.id] = encounter
            return encounter.model_copy(deep=True)

    def get(self, record_id: int) -> Optional[Encounter]:
        encounter = self._store.encounters.get(record_id)
        return encounter.model_copy(deep=True) if encounter is not None else None

    def list_by_filters(
        self,
        *,
        patient_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[EncounterStatus] = None,
    ) -> Iterable[Encounter]:
        for encounter in list(self._store.encounters.values()):
            if patient_id is not None and encounter.patient_id != patient_id:
                continue
            if provider_id is not None and encounter.provider_id != provider_id:
                continue
            if status is not None and encounter.status != status:
                continue
            yield encounter.model_copy(deep=True)

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Encounter:
        with self._store.lock:
            existing = self._store.encounters.get(record_id)
            if existing is None:
                logger.debug("No encounter with id %s to update", record_id)
                raise NotFound("encounter")
            self._ensure_references(fields)
            updated = existing.model_copy(update={**fields, "updated_at": _now()}, deep=True)
            self._store.encounters[record_id] = updated
            return updated.model_copy(deep=True)

    def delete(self, record_id: int) -> int:
        with self._store.lock:
            return 1 if self._store.encounters.pop(record_id, None) is not None else 0

    def _ensure_references(self, fields: Mapping[str, Any]) -> None:
        missing = []
        if "patient_id" in fields and fields["patient_id"] not in self._store.patients:
            missing.append("patientId")
        if "provider_id" in fields and fields["provider_id"] not in self._store.users:
            missing.append("providerId")
        if missing:
            raise ValidationError(missing, "referenced record does not exist: " + ", ".join(missing))


def build_inmemory_repositories():
    """Return fresh (users, patients, encounters) repositories over one store."""

    store = InMemoryStore()
    return (
        InMemoryUserRepository(store),
        InMemoryPatientRepository(store),
        InMemoryEncounterRepository(store),
    )
