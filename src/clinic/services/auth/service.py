from __future__ import annotations

import logging
from typing import FrozenSet

from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import AuthResponse, LoginRequest, UserCreate, UserPublic
from src.clinic.errors import Forbidden, NotFound, Unauthenticated
from src.clinic.infra.db.repositories import UserRepository
from src.clinic.services.credentials.service import CredentialService

logger = logging.getLogger(__name__)

INVALID_LOGIN = "invalid email or password"


class AuthService:
    """Registration, login and "who am I" for session tokens.

    Registration and login are the only operations that run without a prior
    identity.
    """

    def __init__(
        self,
        users: UserRepository,
        credentials: CredentialService,
        registration_roles: FrozenSet[str],
    ) -> None:
        self._users = users
        self._credentials = credentials
        self._registration_roles = registration_roles

    def register(self, payload: UserCreate) -> AuthResponse:
        if payload.role.value not in self._registration_roles:
            raise Forbidden("forbidden: role not open for registration")

        user = self._users.create(
            {
                "name": payload.name,
                "email": payload.email,
                "role": payload.role,
                "password_hash": self._credentials.hash_password(payload.password),
            }
        )
        logger.info("Registered user %s with role %s", user.id, user.role.value)
        return AuthResponse(user=user.public(), token=self._credentials.issue_token(user))

    def login(self, payload: LoginRequest) -> AuthResponse:
        user = self._users.get_by_email(payload.email)
        # Same failure for an unknown email and a wrong password.
        if user is None or not self._credentials.verify_password(payload.password, user.password_hash):
            raise Unauthenticated(INVALID_LOGIN)
        return AuthResponse(user=user.public(), token=self._credentials.issue_token(user))

    def me(self, identity: Identity) -> UserPublic:
        user = self._users.get(identity.subject_id)
        if user is None:
            raise NotFound("user")
        return user.public()
