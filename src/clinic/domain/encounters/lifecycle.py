from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

import pydantic
from pydantic.alias_generators import to_camel

from src.clinic.domain.access.policy import INSUFFICIENT_ROLE
from src.clinic.domain.models.encounter import EncounterCreate, EncounterEdit, EncounterPatch, EncounterStatus
from src.clinic.domain.models.user import UserRole
from src.clinic.errors import Forbidden, ValidationError

BILLER_ONLY_BILLED = "biller can only set status to Billed"

# Roles that may rewrite any clinical field and move status freely, in
# either direction.
CLINICAL_EDITORS = frozenset({UserRole.PROVIDER, UserRole.ADMIN})

# attribute name -> camelCase name the client sent
_WIRE_NAMES = {name: to_camel(name) for name in EncounterEdit.model_fields}


@dataclass(frozen=True)
class EncounterUpdate:
    """Outcome of applying a patch: what to persist and what was dropped."""

    final_fields: Dict[str, Any]
    rejected_fields: List[str] = field(default_factory=list)


def apply_encounter_update(
    actor_role: UserRole,
    existing_status: EncounterStatus,
    patch: EncounterPatch,
) -> EncounterUpdate:
    """Validate an encounter patch against the status rules for ``actor_role``.

    Providers and admins may set any provided field, including any status
    value; nothing enforces forward-only movement. Billers may only mark an
    encounter ``Billed``: other fields they send are dropped and reported in
    ``rejected_fields`` (by their wire names) without being validated, and
    any other status is refused. A provider or admin sending a malformed
    clinical field gets ``ValidationError``.

    Runs after role authorization and before persistence. ``existing_status``
    is accepted so that callers always pass the stored state; the current
    rules do not depend on it.
    """

    provided = patch.provided()

    if actor_role == UserRole.BILLER:
        if provided.get("status") != EncounterStatus.BILLED:
            raise Forbidden(BILLER_ONLY_BILLED)
        rejected = sorted(_WIRE_NAMES.get(name, name) for name in provided if name != "status")
        return EncounterUpdate(final_fields={"status": EncounterStatus.BILLED}, rejected_fields=rejected)

    if actor_role in CLINICAL_EDITORS:
        return EncounterUpdate(final_fields=_checked_edit(provided))

    raise Forbidden(INSUFFICIENT_ROLE)


def _checked_edit(provided: Dict[str, Any]) -> Dict[str, Any]:
    try:
        edit = EncounterEdit.model_validate(provided)
    except pydantic.ValidationError as exc:
        fields: List[str] = []
        for error in exc.errors():
            name = str(error["loc"][0]) if error["loc"] else "body"
            name = _WIRE_NAMES.get(name, name)
            if name not in fields:
                fields.append(name)
        raise ValidationError(fields)
    return edit.provided()


def new_encounter_fields(payload: EncounterCreate) -> Dict[str, Any]:
    """Field set for a new encounter with creation defaults applied."""

    return {
        "patient_id": payload.patient_id,
        "provider_id": payload.provider_id,
        "chief_complaint": payload.chief_complaint,
        "vitals": payload.vitals,
        "status": payload.status or EncounterStatus.DRAFT,
    }
