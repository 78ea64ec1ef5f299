from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from src.clinic.domain.models.base import ApiModel, Patch, reject_null


class Patient(ApiModel):
    """Flat patient demographics record.

    Patients are not owned by any user; access is decided purely by role.
    """

    id: int
    mrn: str
    name: str
    dob: date
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PatientCreate(ApiModel):
    mrn: str = Field(min_length=1)
    name: str = Field(min_length=1)
    dob: date
    phone: Optional[str] = None
    email: Optional[EmailStr] = None


class PatientPatch(Patch):
    mrn: Optional[str] = Field(default=None, min_length=1)
    name: Optional[str] = Field(default=None, min_length=1)
    dob: Optional[date] = None
    phone: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("mrn", "name", "dob")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)
