from __future__ import annotations

from fastapi import APIRouter, Depends, status

from src.clinic.api.dependencies import get_auth_service
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import AuthResponse, LoginRequest, UserCreate, UserPublic
from src.clinic.security import get_current_identity
from src.clinic.services.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(payload: UserCreate, service: AuthService = Depends(get_auth_service)) -> AuthResponse:
    return service.register(payload)


@router.post("/login", response_model=AuthResponse)
def login(payload: LoginRequest, service: AuthService = Depends(get_auth_service)) -> AuthResponse:
    return service.login(payload)


@router.get("/me", response_model=UserPublic)
def me(
    identity: Identity = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> UserPublic:
    return service.me(identity)


@router.post("/logout")
async def logout(identity: Identity = Depends(get_current_identity)) -> dict:
    """Tokens are stateless; the client discards its copy."""
    return {"message": "Logged out (client should delete token)"}
