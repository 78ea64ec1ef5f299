from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.clinic.config import Settings
from src.clinic.infra.db.inmemory import build_inmemory_repositories
from src.clinic.infra.db.models import Base
from src.clinic.infra.db.repositories import (
    EncounterRepository,
    PatientRepository,
    UserRepository,
)
from src.clinic.infra.db.session import create_sqlalchemy_engine, create_sqlalchemy_session_factory
from src.clinic.infra.db.sql_repositories import (
    SqlEncounterRepository,
    SqlPatientRepository,
    SqlUserRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class Repositories:
    """The persistence port handed to request handlers.

    One instance is built per application and stored on ``app.state``;
    nothing in the codebase reaches for a module-level database handle.
    """

    users: UserRepository
    patients: PatientRepository
    encounters: EncounterRepository


def build_inmemory() -> Repositories:
    users, patients, encounters = build_inmemory_repositories()
    return Repositories(users=users, patients=patients, encounters=encounters)


def build_sql(database_url: str) -> Repositories:
    engine = create_sqlalchemy_engine(database_url)

    # Create tables if they do not exist. A real deployment would manage the
    # schema with migrations instead.
    Base.metadata.create_all(engine)

    session_factory = create_sqlalchemy_session_factory(engine)
    return Repositories(
        users=SqlUserRepository(session_factory),
        patients=SqlPatientRepository(session_factory),
        encounters=SqlEncounterRepository(session_factory),
    )


def build_repositories(settings: Settings, database_url: Optional[str] = None) -> Repositories:
    """Pick the repository implementation for ``settings``.

    SQL-backed repositories are used when USE_SQL_REPOS is enabled and a
    database URL is configured; otherwise the in-memory ones.
    """

    if not settings.use_sql_repos:
        return build_inmemory()

    db_url = database_url or settings.database_url
    if not db_url:
        logger.warning("USE_SQL_REPOS is set but DATABASE_URL is not; using in-memory repositories")
        return build_inmemory()

    return build_sql(db_url)
