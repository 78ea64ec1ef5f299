from __future__ import annotations

import logging
from typing import List, Optional

from src.clinic.domain.access.policy import Action, ResourceKind, authorize
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.patient import Patient, PatientCreate, PatientPatch
from src.clinic.errors import NotFound
from src.clinic.infra.db.repositories import PatientRepository

logger = logging.getLogger(__name__)


class PatientService:
    def __init__(self, patients: PatientRepository) -> None:
        self._patients = patients

    def list_patients(self, identity: Identity, *, mrn: Optional[str] = None) -> List[Patient]:
        authorize(identity, Action.LIST, ResourceKind.PATIENT).raise_for_denial()
        return list(self._patients.list_by_filters(mrn=mrn))

    def get_patient(self, identity: Identity, patient_id: int) -> Patient:
        authorize(identity, Action.READ, ResourceKind.PATIENT, target_id=patient_id).raise_for_denial()
        patient = self._patients.get(patient_id)
        if patient is None:
            raise NotFound("patient")
        return patient

    def create_patient(self, identity: Identity, payload: PatientCreate) -> Patient:
        authorize(identity, Action.CREATE, ResourceKind.PATIENT).raise_for_denial()
        patient = self._patients.create(payload.model_dump())
        logger.info("Patient %s created by %s", patient.id, identity.subject_id)
        return patient

    def update_patient(self, identity: Identity, patient_id: int, patch: PatientPatch) -> Patient:
        authorize(identity, Action.UPDATE, ResourceKind.PATIENT, target_id=patient_id).raise_for_denial()
        fields = patch.provided()
        if not fields:
            return self.get_patient(identity, patient_id)
        return self._patients.update(patient_id, fields)

    def delete_patient(self, identity: Identity, patient_id: int) -> None:
        """Delete a patient together with all of their encounters."""

        authorize(identity, Action.DELETE, ResourceKind.PATIENT, target_id=patient_id).raise_for_denial()
        if self._patients.delete(patient_id) == 0:
            raise NotFound("patient")
        logger.info("Patient %s deleted by %s", patient_id, identity.subject_id)
