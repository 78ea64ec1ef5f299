from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from src.clinic.api.dependencies import get_patient_service
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.patient import Patient, PatientCreate, PatientPatch
from src.clinic.security import get_current_identity
from src.clinic.services.patients.service import PatientService

router = APIRouter(prefix="/patients", tags=["patients"])


@router.get("", response_model=List[Patient])
def list_patients(
    mrn: Optional[str] = Query(None),
    identity: Identity = Depends(get_current_identity),
    service: PatientService = Depends(get_patient_service),
) -> List[Patient]:
    return service.list_patients(identity, mrn=mrn)


@router.get("/{patient_id}", response_model=Patient)
def get_patient(
    patient_id: int,
    identity: Identity = Depends(get_current_identity),
    service: PatientService = Depends(get_patient_service),
) -> Patient:
    return service.get_patient(identity, patient_id)


@router.post("", response_model=Patient, status_code=status.HTTP_201_CREATED)
def create_patient(
    payload: PatientCreate,
    identity: Identity = Depends(get_current_identity),
    service: PatientService = Depends(get_patient_service),
) -> Patient:
    return service.create_patient(identity, payload)


@router.put("/{patient_id}", response_model=Patient)
def update_patient(
    patient_id: int,
    patch: PatientPatch,
    identity: Identity = Depends(get_current_identity),
    service: PatientService = Depends(get_patient_service),
) -> Patient:
    return service.update_patient(identity, patient_id, patch)


@router.delete("/{patient_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_patient(
    patient_id: int,
    identity: Identity = Depends(get_current_identity),
    service: PatientService = Depends(get_patient_service),
) -> Response:
    service.delete_patient(identity, patient_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
