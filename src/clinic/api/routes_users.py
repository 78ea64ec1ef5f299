from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from src.clinic.api.dependencies import get_user_service
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import UserCreate, UserPatch, UserPublic, UserRole
from src.clinic.security import get_current_identity
from src.clinic.services.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[UserPublic])
def list_users(
    role: Optional[UserRole] = Query(None),
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> List[UserPublic]:
    return service.list_users(identity, role=role)


@router.get("/{user_id}", response_model=UserPublic)
def get_user(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> UserPublic:
    return service.get_user(identity, user_id)


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def create_user(
    payload: UserCreate,
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> UserPublic:
    return service.create_user(identity, payload)


@router.put("/{user_id}", response_model=UserPublic)
def update_user(
    user_id: int,
    patch: UserPatch,
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> UserPublic:
    return service.update_user(identity, user_id, patch)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
) -> Response:
    service.delete_user(identity, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
