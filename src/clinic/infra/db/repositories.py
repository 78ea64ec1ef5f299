from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Iterable, Mapping, Optional, TypeVar

from src.clinic.domain.models.encounter import Encounter, EncounterStatus
from src.clinic.domain.models.patient import Patient
from src.clinic.domain.models.user import User, UserRole

RecordT = TypeVar("RecordT")


class Repository(ABC, Generic[RecordT]):
    """Plain persistence for one entity.

    Implementations enforce uniqueness (raising ``Conflict``) and referential
    integrity (raising ``ValidationError`` or ``Conflict``) but contain no
    access rules. ``fields`` use the snake_case attribute names of the domain
    models.
    """

    @abstractmethod
    def create(self, fields: Mapping[str, Any]) -> RecordT:
        raise NotImplementedError

    @abstractmethod
    def get(self, record_id: int) -> Optional[RecordT]:
        raise NotImplementedError

    @abstractmethod
    def update(self, record_id: int, fields: Mapping[str, Any]) -> RecordT:
        """Apply ``fields`` to an existing record; raise ``NotFound`` if absent."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, record_id: int) -> int:
        """Delete a record and return how many rows were removed (0 or 1)."""
        raise NotImplementedError


class UserRepository(Repository[User]):
    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        raise NotImplementedError

    @abstractmethod
    def list_by_filters(self, *, role: Optional[UserRole] = None) -> Iterable[User]:
        raise NotImplementedError


class PatientRepository(Repository[Patient]):
    @abstractmethod
    def list_by_filters(self, *, mrn: Optional[str] = None) -> Iterable[Patient]:
        raise NotImplementedError


class EncounterRepository(Repository[Encounter]):
    @abstractmethod
    def list_by_filters(
        self,
        *,
        patient_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[EncounterStatus] = None,
    ) -> Iterable[Encounter]:
        raise NotImplementedError
