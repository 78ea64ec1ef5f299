"""Populate a repository set with demo data.

Run ``python -m src.clinic.infra.db.seed`` with ``USE_SQL_REPOS=true`` and a
``DATABASE_URL`` to seed a real database. Every demo account shares the
password ``password123``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, List

from src.clinic.config import Settings, settings as default_settings
from src.clinic.domain.models.encounter import Encounter, EncounterStatus
from src.clinic.domain.models.patient import Patient
from src.clinic.domain.models.user import User, UserRole
from src.clinic.infra.db.bootstrap import Repositories, build_repositories
from src.clinic.services.credentials.service import CredentialService

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"

DEMO_USERS = [
    ("Dr. Alice Provider", "alice@clinic.example.com", UserRole.PROVIDER),
    ("Dr. Bob Provider", "bob@clinic.example.com", UserRole.PROVIDER),
    ("Sam Scribe", "sam@clinic.example.com", UserRole.SCRIBE),
    ("Bill Biller", "bill@clinic.example.com", UserRole.BILLER),
    ("Admin Annie", "admin@clinic.example.com", UserRole.ADMIN),
]

DEMO_PATIENTS = [
    {"mrn": "MRN-1001", "name": "John Doe", "dob": date(1980, 5, 12), "phone": "555-0101", "email": "john.doe@example.com"},
    {"mrn": "MRN-1002", "name": "Jane Smith", "dob": date(1992, 11, 3), "phone": "555-0102", "email": "jane.smith@example.com"},
    {"mrn": "MRN-1003", "name": "Carlos Rivera", "dob": date(1975, 2, 27), "phone": None, "email": None},
]


def seed(repositories: Repositories, credentials: CredentialService) -> Dict[str, List]:
    """Create demo users, patients and encounters and return them."""

    password_hash = credentials.hash_password(DEMO_PASSWORD)
    users: List[User] = [
        repositories.users.create({"name": name, "email": email, "role": role, "password_hash": password_hash})
        for name, email, role in DEMO_USERS
    ]
    patients: List[Patient] = [repositories.patients.create(fields) for fields in DEMO_PATIENTS]

    alice, bob = users[0], users[1]
    encounters: List[Encounter] = [
        repositories.encounters.create(
            {
                "patient_id": patients[0].id,
                "provider_id": alice.id,
                "chief_complaint": "Persistent cough for two weeks",
                "vitals": {"bp": "128/82", "hr": 78, "tempF": 99.1},
                "status": EncounterStatus.DRAFT,
            }
        ),
        repositories.encounters.create(
            {
                "patient_id": patients[1].id,
                "provider_id": alice.id,
                "chief_complaint": "Annual physical",
                "vitals": {"bp": "118/76", "hr": 64},
                "status": EncounterStatus.REVIEW,
            }
        ),
        repositories.encounters.create(
            {
                "patient_id": patients[1].id,
                "provider_id": bob.id,
                "chief_complaint": "Follow-up for hypertension",
                "vitals": {"bp": "142/90", "hr": 72},
                "status": EncounterStatus.FINAL,
            }
        ),
        repositories.encounters.create(
            {
                "patient_id": patients[2].id,
                "provider_id": bob.id,
                "chief_complaint": "Sprained ankle",
                "vitals": None,
                "status": EncounterStatus.BILLED,
            }
        ),
    ]

    logger.info("Seeded %d users, %d patients, %d encounters", len(users), len(patients), len(encounters))
    return {"users": users, "patients": patients, "encounters": encounters}


def main(settings: Settings = default_settings) -> None:  # pragma: no cover - CLI wiring
    logging.basicConfig(level=settings.log_level.upper())
    seed(build_repositories(settings), CredentialService(settings))


if __name__ == "__main__":  # pragma: no cover
    main()
