from __future__ import annotations

from typing import Any, Dict, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class ApiModel(BaseModel):
    """Base for every model that crosses the API boundary.

    Fields are declared in snake_case and serialized in camelCase, matching
    the JSON shape clients already use (``patientId``, ``chiefComplaint``).
    Input is accepted in either spelling.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Patch(ApiModel):
    """Partial update payload.

    Every field is tri-state: absent (leave the stored value alone), explicit
    ``null`` (clear it) or a value. Absent fields are not part of
    ``model_fields_set``, so ``provided()`` only ever returns what the caller
    actually sent.
    """

    def provided(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.model_fields_set}


def reject_null(value: Optional[T]) -> T:
    """Field validator for patch fields backed by a required column."""

    if value is None:
        raise ValueError("field is required and cannot be null")
    return value
