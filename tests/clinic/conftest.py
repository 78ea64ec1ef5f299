from datetime import datetime, timedelta, timezone

import pytest

from src.clinic.config import DEFAULT_REGISTRATION_ROLES, Settings
from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import UserRole
from src.clinic.infra.db.bootstrap import build_inmemory
from src.clinic.infra.db.seed import seed
from src.clinic.main import create_app


@pytest.fixture
def settings():
    # bcrypt's minimum work factor keeps the suite fast.
    return Settings(
        jwt_secret="test-secret-for-hs256-at-least-32-bytes",
        bcrypt_rounds=4,
        use_sql_repos=False,
        registration_roles=frozenset(DEFAULT_REGISTRATION_ROLES.split(",")),
    )


@pytest.fixture
def app(settings):
    return create_app(settings=settings, repositories=build_inmemory())


@pytest.fixture
def demo(app):
    """Seed the app's repositories with the demo users, patients and encounters."""
    return seed(app.state.repositories, app.state.credentials)


@pytest.fixture
def users(demo):
    """Demo users keyed by a short label: provider, provider2, scribe, biller, admin."""
    alice, bob, sam, bill, annie = demo["users"]
    return {"provider": alice, "provider2": bob, "scribe": sam, "biller": bill, "admin": annie}


@pytest.fixture
def headers(app, users):
    """Authorization headers per demo user label."""
    credentials = app.state.credentials
    return {
        label: {"Authorization": f"Bearer {credentials.issue_token(user)}"}
        for label, user in users.items()
    }


@pytest.fixture
def identity_for():
    """Factory building a request Identity without going through a token."""

    def _make(role: UserRole, subject_id: int = 1) -> Identity:
        return Identity(
            subject_id=subject_id,
            role=role,
            email=f"{role.value}@clinic.example.com",
            expires_at=datetime.now(timezone.utc) + timedelta(hours=2),
        )

    return _make
