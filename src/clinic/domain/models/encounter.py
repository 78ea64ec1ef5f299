from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from src.clinic.domain.models.base import ApiModel, Patch, reject_null


class EncounterStatus(str, Enum):
    DRAFT = "Draft"
    REVIEW = "Review"
    FINAL = "Final"
    BILLED = "Billed"


class Encounter(ApiModel):
    """A single visit linking one patient to one provider.

    ``vitals`` is an arbitrary JSON object (blood pressure, pulse, ...); the
    API does not interpret it.
    """

    id: int
    patient_id: int
    provider_id: int
    chief_complaint: str
    vitals: Optional[Dict[str, Any]] = None
    status: EncounterStatus = EncounterStatus.DRAFT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EncounterCreate(ApiModel):
    patient_id: int = Field(gt=0)
    provider_id: int = Field(gt=0)
    chief_complaint: str = Field(min_length=1)
    vitals: Optional[Dict[str, Any]] = None
    status: Optional[EncounterStatus] = None


class EncounterPatch(Patch):
    """Partial update as received on the wire.

    Only ``status`` is checked while parsing. The clinical fields are checked
    against :class:`EncounterEdit` once the caller's role is known, since a
    biller's copy of them is ignored rather than validated.
    """

    chief_complaint: Optional[Any] = None
    vitals: Optional[Any] = None
    status: Optional[EncounterStatus] = None

    @field_validator("status")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)


class EncounterEdit(Patch):
    """Clinical fields of an update made by a provider or an admin."""

    chief_complaint: Optional[str] = Field(default=None, min_length=1)
    vitals: Optional[Dict[str, Any]] = None
    status: Optional[EncounterStatus] = None

    @field_validator("chief_complaint", "status")
    @classmethod
    def check_not_null(cls, value):
        return reject_null(value)
