"""Password hashing and session tokens.

Tokens are HS256 JWTs carrying the user's id, role and email. They are
stateless: there is no server-side session table, so logout is a client-side
concern and a token stays valid until it expires.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from src.clinic.config import Settings
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import User, UserRole
from src.clinic.errors import Unauthenticated, ValidationError

logger = logging.getLogger(__name__)

# bcrypt ignores everything past this many bytes of input.
BCRYPT_MAX_BYTES = 72


class CredentialService:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    # Passwords

    def hash_password(self, plaintext: str) -> str:
        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            raise ValidationError(["password"], f"password must be at most {BCRYPT_MAX_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=self._settings.bcrypt_rounds)
        return bcrypt.hashpw(encoded, salt).decode("ascii")

    def verify_password(self, plaintext: str, password_hash: str) -> bool:
        """Check ``plaintext`` against a stored bcrypt hash.

        The comparison itself is done by ``bcrypt.checkpw``. A stored value
        that is not a bcrypt hash, or an input bcrypt would truncate, simply
        fails to verify.
        """

        encoded = plaintext.encode("utf-8")
        if len(encoded) > BCRYPT_MAX_BYTES:
            return False
        try:
            return bcrypt.checkpw(encoded, password_hash.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is not a valid bcrypt hash")
            return False

    # Tokens

    def issue_token(self, user: User, *, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.now(timezone.utc)
        payload = {
            # PyJWT requires the subject claim to be a string.
            "sub": str(user.id),
            "role": user.role.value,
            "email": user.email,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self._settings.token_ttl_seconds),
        }
        return jwt.encode(payload, self._settings.jwt_secret, algorithm=self._settings.jwt_algorithm)

    def verify_token(self, token: str) -> Identity:
        """Return the Identity encoded in ``token`` or raise Unauthenticated.

        Malformed tokens, bad signatures, expired tokens and tokens with
        missing or unknown claims are all rejected the same way.
        """

        try:
            claims = jwt.decode(
                token,
                self._settings.jwt_secret,
                algorithms=[self._settings.jwt_algorithm],
                options={"require": ["sub", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("token expired")
        except jwt.InvalidTokenError:
            raise Unauthenticated("invalid token")

        try:
            return Identity(
                subject_id=int(claims["sub"]),
                role=UserRole(claims["role"]),
                email=str(claims["email"]),
                expires_at=datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
            )
        except (KeyError, TypeError, ValueError):
            raise Unauthenticated("invalid token")
