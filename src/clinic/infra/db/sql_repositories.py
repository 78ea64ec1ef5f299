from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.clinic.domain.models.encounter import Encounter, EncounterStatus
from src.clinic.domain.models.patient import Patient
from src.clinic.domain.models.user import User, UserRole
from src.clinic.errors import Conflict, NotFound, ValidationError
from src.clinic.infra.db.models import EncounterORM, PatientORM, UserORM
from src.clinic.infra.db.repositories import (
    EncounterRepository,
    PatientRepository,
    UserRepository,
)
from src.clinic.infra.db.session import SessionFactory

logger = logging.getLogger(__name__)


def _column_values(fields: Mapping[str, Any]) -> dict:
    """Convert enum members to the plain strings stored in the tables."""

    return {key: (value.value if isinstance(value, (UserRole, EncounterStatus)) else value) for key, value in fields.items()}


def _commit(session: Session, conflict_field: str) -> None:
    """Commit, translating a constraint violation into ``Conflict``.

    Uniqueness is checked before writing; this only catches a concurrent
    writer that got there first.
    """

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        logger.debug("Integrity error on commit, reporting conflict on %s", conflict_field)
        raise Conflict(conflict_field)


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def create(self, fields: Mapping[str, Any]) -> User:
        session = self._session_factory()
        try:
            self._ensure_unique_email(session, fields["email"])
            orm = UserORM(**_column_values(fields))
            session.add(orm)
            _commit(session, "email")
            return orm.to_domain()
        finally:
            session.close()

    def get(self, record_id: int) -> Optional[User]:
        session = self._session_factory()
        try:
            orm = session.get(UserORM, record_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def get_by_email(self, email: str) -> Optional[User]:
        session = self._session_factory()
        try:
            orm = session.scalars(select(UserORM).where(UserORM.email == email)).first()
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_filters(self, *, role: Optional[UserRole] = None) -> Iterable[User]:
        session = self._session_factory()
        try:
            query = select(UserORM).order_by(UserORM.id)
            if role is not None:
                query = query.where(UserORM.role == role.value)
            return [orm.to_domain() for orm in session.scalars(query)]
        finally:
            session.close()

    def update(self, record_id: int, fields: Mapping[str, Any]) -> User:
        session = self._session_factory()
        try:
            orm = session.get(UserORM, record_id)
            if orm is None:
                logger.debug("No user with id %s to update", record_id)
                raise NotFound("user")
            if "email" in fields:
                self._ensure_unique_email(session, fields["email"], exclude_id=record_id)
            for key, value in _column_values(fields).items():
                setattr(orm, key, value)
            _commit(session, "email")
            return orm.to_domain()
        finally:
            session.close()

    def delete(self, record_id: int) -> int:
        session = self._session_factory()
        try:
            orm = session.get(UserORM, record_id)
            if orm is None:
                return 0
            referenced = session.scalars(
                select(EncounterORM.id).where(EncounterORM.provider_id == record_id).limit(1)
            ).first()
            if referenced is not None:
                logger.debug("Refusing to delete user %s: referenced by encounters", record_id)
                raise Conflict("providerId", "user is the provider on existing encounters")
            session.delete(orm)
            _commit(session, "providerId")
            return 1
        finally:
            session.close()

    def _ensure_unique_email(self, session: Session, email: str, exclude_id: Optional[int] = None) -> None:
        query = select(UserORM.id).where(UserORM.email == email)
        if exclude_id is not None:
            query = query.where(UserORM.id != exclude_id)
        if session.scalars(query.limit(1)).first() is not None:
            logger.debug("Duplicate user email rejected")
            raise Conflict("email", "email already in use")


class SqlPatientRepository(PatientRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def create(self, fields: Mapping[str, Any]) -> Patient:
        session = self._session_factory()
        try:
            self._ensure_unique_mrn(session, fields["mrn"])
            orm = PatientORM(**_column_values(fields))
            session.add(orm)
            _commit(session, "mrn")
            return orm.to_domain()
        finally:
            session.close()

    def get(self, record_id: int) -> Optional[Patient]:
        session = self._session_factory()
        try:
            orm = session.get(PatientORM, record_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_filters(self, *, mrn: Optional[str] = None) -> Iterable[Patient]:
        session = self._session_factory()
        try:
            query = select(PatientORM).order_by(PatientORM.id)
            if mrn is not None:
                query = query.where(PatientORM.mrn == mrn)
            return [orm.to_domain() for orm in session.scalars(query)]
        finally:
            session.close()

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Patient:
        session = self._session_factory()
        try:
            orm = session.get(PatientORM, record_id)
            if orm is None:
                logger.debug("No patient with id %s to update", record_id)
                raise NotFound("patient")
            if "mrn" in fields:
                self._ensure_unique_mrn(session, fields["mrn"], exclude_id=record_id)
            for key, value in _column_values(fields).items():
                setattr(orm, key, value)
            _commit(session, "mrn")
            return orm.to_domain()
        finally:
            session.close()

    def delete(self, record_id: int) -> int:
        session = self._session_factory()
        try:
            orm = session.get(PatientORM, record_id)
            if orm is None:
                return 0
            # Cascade explicitly so the behaviour does not depend on the
            # database honouring ON DELETE CASCADE.
            session.execute(delete(EncounterORM).where(EncounterORM.patient_id == record_id))
            session.delete(orm)
            session.commit()
            return 1
        finally:
            session.close()

    def _ensure_unique_mrn(self, session: Session, mrn: str, exclude_id: Optional[int] = None) -> None:
        query = select(PatientORM.id).where(PatientORM.mrn == mrn)
        if exclude_id is not None:
            query = query.where(PatientORM.id != exclude_id)
        if session.scalars(query.limit(1)).first() is not None:
            logger.debug("Duplicate patient MRN rejected")
            raise Conflict("mrn", "mrn already in use")


class SqlEncounterRepository(EncounterRepository):
    def __init__(self, session_factory: SessionFactory) -> None:
        self._session_factory = session_factory

    def create(self, fields: Mapping[str, Any]) -> Encounter:
        session = self._session_factory()
        try:
            self._ensure_references(session, fields)
            orm = EncounterORM(**_column_values(fields))
            session.add(orm)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                raise ValidationError(["patientId", "providerId"], "referenced record does not exist")
            return orm.to_domain()
        finally:
            session.close()

    def get(self, record_id: int) -> Optional[Encounter]:
        session = self._session_factory()
        try:
            orm = session.get(EncounterORM, record_id)
            return orm.to_domain() if orm is not None else None
        finally:
            session.close()

    def list_by_filters(
        self,
        *,
        patient_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[EncounterStatus] = None,
    ) -> Iterable[Encounter]:
        session = self._session_factory()
        try:
            query = select(EncounterORM).order_by(EncounterORM.id)
            if patient_id is not None:
                query = query.where(EncounterORM.patient_id == patient_id)
            if provider_id is not None:
                query = query.where(EncounterORM.provider_id == provider_id)
            if status is not None:
                query = query.where(EncounterORM.status == status.value)
            return [orm.to_domain() for orm in session.scalars(query)]
        finally:
            session.close()

    def update(self, record_id: int, fields: Mapping[str, Any]) -> Encounter:
        session = self._session_factory()
        try:
            orm = session.get(EncounterORM, record_id)
            if orm is None:
                logger.debug("No encounter with id %s to update", record_id)
                raise NotFound("encounter")
            self._ensure_references(session, fields)
            for key, value in _column_values(fields).items():
                setattr(orm, key, value)
            session.commit()
            return orm.to_domain()
        finally:
            session.close()

    def delete(self, record_id: int) -> int:
        session = self._session_factory()
        try:
            result = session.execute(delete(EncounterORM).where(EncounterORM.id == record_id))
            session.commit()
            return result.rowcount or 0
        finally:
            session.close()

    def _ensure_references(self, session: Session, fields: Mapping[str, Any]) -> None:
        missing: List[str] = []
        if "patient_id" in fields and session.get(PatientORM, fields["patient_id"]) is None:
            missing.append("patientId")
        if "provider_id" in fields and session.get(UserORM, fields["provider_id"]) is None:
            missing.append("providerId")
        if missing:
            raise ValidationError(missing, "referenced record does not exist: " + ", ".join(missing))
