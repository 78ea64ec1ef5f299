from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.clinic.domain.models.encounter import Encounter, EncounterStatus
from src.clinic.domain.models.patient import Patient
from src.clinic.domain.models.user import User, UserRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )


class UserORM(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    email: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String, nullable=False)
    role: Mapped[str] = mapped_column(String, nullable=False)

    def to_domain(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            password_hash=self.password_hash,
            role=UserRole(self.role),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class PatientORM(TimestampMixin, Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    mrn: Mapped[str] = mapped_column(String, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String, nullable=False)
    dob: Mapped[date] = mapped_column(Date, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    def to_domain(self) -> Patient:
        return Patient(
            id=self.id,
            mrn=self.mrn,
            name=self.name,
            dob=self.dob,
            phone=self.phone,
            email=self.email,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class EncounterORM(TimestampMixin, Base):
    __tablename__ = "encounters"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    patient_id: Mapped[int] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False, index=True
    )
    # A provider cannot be deleted while any encounter still points at them.
    provider_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT", onupdate="CASCADE"), nullable=False, index=True
    )
    chief_complaint: Mapped[str] = mapped_column(String, nullable=False)
    vitals: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default=EncounterStatus.DRAFT.value)

    def to_domain(self) -> Encounter:
        return Encounter(
            id=self.id,
            patient_id=self.patient_id,
            provider_id=self.provider_id,
            chief_complaint=self.chief_complaint,
            vitals=self.vitals,
            status=EncounterStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
