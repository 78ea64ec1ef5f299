from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.clinic.domain.models.identity import Identity
from src.clinic.errors import Unauthenticated
from src.clinic.services.credentials.service import CredentialService

# Session tokens are expected as "Authorization: Bearer <token>".
# auto_error is off so that a missing header is reported through the same
# Unauthenticated error (and 401 body) as a bad token.
_bearer = HTTPBearer(auto_error=False)


def get_credential_service(request: Request) -> CredentialService:
    """Return the CredentialService built by ``create_app``."""

    return request.app.state.credentials


async def get_current_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(_bearer),
    credential_service: CredentialService = Depends(get_credential_service),
) -> Identity:
    """FastAPI dependency resolving the caller's Identity.

    Every route except health, register and login depends on this, so an
    unauthenticated request is rejected before any access rule or
    repository is consulted.
    """

    if credentials is None or not credentials.credentials:
        raise Unauthenticated("missing or invalid Authorization header (use Bearer token)")
    return credential_service.verify_token(credentials.credentials)
