from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from src.clinic.domain.models.user import UserRole


class Identity(BaseModel):
    """The authenticated actor for one request.

    Rebuilt from a verified session token on every request and never
    persisted.
    """

    model_config = ConfigDict(frozen=True)

    subject_id: int
    role: UserRole
    email: str
    expires_at: datetime
