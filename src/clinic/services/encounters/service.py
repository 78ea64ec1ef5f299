from __future__ import annotations

import logging
from typing import List, Optional

from src.clinic.domain.access.policy import Action, ResourceKind, authorize
from src.clinic.domain.encounters.lifecycle import apply_encounter_update, new_encounter_fields
from src.clinic.domain.models.encounter import Encounter, EncounterCreate, EncounterPatch, EncounterStatus
from src.clinic.domain.models.identity import Identity
from src.clinic.errors import NotFound
from src.clinic.infra.db.repositories import EncounterRepository

logger = logging.getLogger(__name__)


class EncounterService:
    """CRUD for encounters, with status changes routed through the lifecycle rules."""

    def __init__(self, encounters: EncounterRepository) -> None:
        self._encounters = encounters

    def list_encounters(
        self,
        identity: Identity,
        *,
        patient_id: Optional[int] = None,
        provider_id: Optional[int] = None,
        status: Optional[EncounterStatus] = None,
    ) -> List[Encounter]:
        authorize(identity, Action.LIST, ResourceKind.ENCOUNTER).raise_for_denial()
        return list(
            self._encounters.list_by_filters(patient_id=patient_id, provider_id=provider_id, status=status)
        )

    def get_encounter(self, identity: Identity, encounter_id: int) -> Encounter:
        authorize(identity, Action.READ, ResourceKind.ENCOUNTER, target_id=encounter_id).raise_for_denial()
        encounter = self._encounters.get(encounter_id)
        if encounter is None:
            raise NotFound("encounter")
        return encounter

    def create_encounter(self, identity: Identity, payload: EncounterCreate) -> Encounter:
        authorize(identity, Action.CREATE, ResourceKind.ENCOUNTER).raise_for_denial()
        encounter = self._encounters.create(new_encounter_fields(payload))
        logger.info("Encounter %s created by %s", encounter.id, identity.subject_id)
        return encounter

    def update_encounter(self, identity: Identity, encounter_id: int, patch: EncounterPatch) -> Encounter:
        """Apply a partial update.

        Fields absent from ``patch`` keep their stored values. For billers
        only the status change is persisted.
        """

        authorize(identity, Action.UPDATE, ResourceKind.ENCOUNTER, target_id=encounter_id).raise_for_denial()

        existing = self._encounters.get(encounter_id)
        if existing is None:
            raise NotFound("encounter")

        update = apply_encounter_update(identity.role, existing.status, patch)
        if update.rejected_fields:
            logger.info(
                "Ignored fields %s in %s update of encounter %s",
                ",".join(update.rejected_fields),
                identity.role.value,
                encounter_id,
            )
        if not update.final_fields:
            return existing
        return self._encounters.update(encounter_id, update.final_fields)

    def delete_encounter(self, identity: Identity, encounter_id: int) -> None:
        authorize(identity, Action.DELETE, ResourceKind.ENCOUNTER, target_id=encounter_id).raise_for_denial()
        if self._encounters.delete(encounter_id) == 0:
            raise NotFound("encounter")
        logger.info("Encounter %s deleted by %s", encounter_id, identity.subject_id)
