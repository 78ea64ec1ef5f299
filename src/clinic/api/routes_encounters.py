from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from src.clinic.api.dependencies import get_encounter_service
from src.clinic.domain.models.encounter import Encounter, EncounterCreate, EncounterPatch, EncounterStatus
from src.clinic.domain.models.identity import Identity
from src.clinic.security import get_current_identity
from src.clinic.services.encounters.service import EncounterService

router = APIRouter(prefix="/encounters", tags=["encounters"])


@router.get("", response_model=List[Encounter])
def list_encounters(
    patient_id: Optional[int] = Query(None, alias="patientId"),
    provider_id: Optional[int] = Query(None, alias="providerId"),
    status_filter: Optional[EncounterStatus] = Query(None, alias="status"),
    identity: Identity = Depends(get_current_identity),
    service: EncounterService = Depends(get_encounter_service),
) -> List[Encounter]:
    return service.list_encounters(identity, patient_id=patient_id, provider_id=provider_id, status=status_filter)


@router.get("/{encounter_id}", response_model=Encounter)
def get_encounter(
    encounter_id: int,
    identity: Identity = Depends(get_current_identity),
    service: EncounterService = Depends(get_encounter_service),
) -> Encounter:
    return service.get_encounter(identity, encounter_id)


@router.post("", response_model=Encounter, status_code=status.HTTP_201_CREATED)
def create_encounter(
    payload: EncounterCreate,
    identity: Identity = Depends(get_current_identity),
    service: EncounterService = Depends(get_encounter_service),
) -> Encounter:
    return service.create_encounter(identity, payload)


@router.put("/{encounter_id}", response_model=Encounter)
def update_encounter(
    encounter_id: int,
    patch: EncounterPatch,
    identity: Identity = Depends(get_current_identity),
    service: EncounterService = Depends(get_encounter_service),
) -> Encounter:
    return service.update_encounter(identity, encounter_id, patch)


@router.delete("/{encounter_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_encounter(
    encounter_id: int,
    identity: Identity = Depends(get_current_identity),
    service: EncounterService = Depends(get_encounter_service),
) -> Response:
    service.delete_encounter(identity, encounter_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
