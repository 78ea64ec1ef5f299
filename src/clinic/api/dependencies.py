from __future__ import annotations

from fastapi import Depends, Request

from src.clinic.infra.db.bootstrap import Repositories
from src.clinic.security import get_credential_service
from src.clinic.services.auth.service import AuthService
from src.clinic.services.credentials.service import CredentialService
from src.clinic.services.encounters.service import EncounterService
from src.clinic.services.patients.service import PatientService
from src.clinic.services.users.service import UserService


def get_repositories(request: Request) -> Repositories:
    return request.app.state.repositories


def get_auth_service(
    request: Request,
    repositories: Repositories = Depends(get_repositories),
    credentials: CredentialService = Depends(get_credential_service),
) -> AuthService:
    return AuthService(repositories.users, credentials, request.app.state.settings.registration_roles)


def get_user_service(
    repositories: Repositories = Depends(get_repositories),
    credentials: CredentialService = Depends(get_credential_service),
) -> UserService:
    return UserService(repositories.users, credentials)


def get_patient_service(repositories: Repositories = Depends(get_repositories)) -> PatientService:
    return PatientService(repositories.patients)


def get_encounter_service(repositories: Repositories = Depends(get_repositories)) -> EncounterService:
    return EncounterService(repositories.encounters)
