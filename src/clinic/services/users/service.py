from __future__ import annotations

import logging
from typing import List, Optional

from src.clinic.domain.access.policy import Action, ResourceKind, authorize
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import UserCreate, UserPatch, UserPublic, UserRole
from src.clinic.errors import NotFound
from src.clinic.infra.db.repositories import UserRepository
from src.clinic.services.credentials.service import CredentialService

logger = logging.getLogger(__name__)


class UserService:
    """User administration and self-service profile updates.

    Admins manage every account. Any other user may read their own record
    and change their own name or email, but never their role.
    """

    def __init__(self, users: UserRepository, credentials: CredentialService) -> None:
        self._users = users
        self._credentials = credentials

    def list_users(self, identity: Identity, *, role: Optional[UserRole] = None) -> List[UserPublic]:
        authorize(identity, Action.LIST, ResourceKind.USER).raise_for_denial()
        return [user.public() for user in self._users.list_by_filters(role=role)]

    def get_user(self, identity: Identity, user_id: int) -> UserPublic:
        authorize(identity, Action.READ, ResourceKind.USER, target_id=user_id).raise_for_denial()
        user = self._users.get(user_id)
        if user is None:
            raise NotFound("user")
        return user.public()

    def create_user(self, identity: Identity, payload: UserCreate) -> UserPublic:
        authorize(identity, Action.CREATE, ResourceKind.USER).raise_for_denial()
        user = self._users.create(
            {
                "name": payload.name,
                "email": payload.email,
                "role": payload.role,
                "password_hash": self._credentials.hash_password(payload.password),
            }
        )
        logger.info("User %s created by %s", user.id, identity.subject_id)
        return user.public()

    def update_user(self, identity: Identity, user_id: int, patch: UserPatch) -> UserPublic:
        fields = patch.provided()
        authorize(
            identity,
            Action.UPDATE,
            ResourceKind.USER,
            target_id=user_id,
            fields=fields.keys(),
        ).raise_for_denial()
        if not fields:
            return self.get_user(identity, user_id)
        return self._users.update(user_id, fields).public()

    def delete_user(self, identity: Identity, user_id: int) -> None:
        authorize(identity, Action.DELETE, ResourceKind.USER, target_id=user_id).raise_for_denial()
        if self._users.delete(user_id) == 0:
            raise NotFound("user")
        logger.info("User %s deleted by %s", user_id, identity.subject_id)
