from __future__ import annotations

import logging
from typing import Dict, Optional, Type

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.clinic.api.routes_auth import router as auth_router
from src.clinic.api.routes_encounters import router as encounters_router
from src.clinic.api.routes_patients import router as patients_router
from src.clinic.api.routes_system import router as system_router
from src.clinic.api.routes_users import router as users_router
from src.clinic.config import Settings, settings as default_settings
from src.clinic.errors import ClinicError, Conflict, Forbidden, NotFound, Unauthenticated, ValidationError
from src.clinic.infra.db.bootstrap import Repositories, build_repositories
from src.clinic.services.credentials.service import CredentialService

logger = logging.getLogger(__name__)

# Fixed contract between the error taxonomy and HTTP status codes.
STATUS_BY_ERROR: Dict[Type[ClinicError], int] = {
    Unauthenticated: status.HTTP_401_UNAUTHORIZED,
    Forbidden: status.HTTP_403_FORBIDDEN,
    NotFound: status.HTTP_404_NOT_FOUND,
    ValidationError: status.HTTP_400_BAD_REQUEST,
    Conflict: status.HTTP_409_CONFLICT,
}


def configure_logging(level: str) -> None:
    """Install a basic root handler unless the host process already did."""

    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


def _status_for(exc: ClinicError) -> int:
    for error_type, status_code in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def clinic_error_handler(request: Request, exc: ClinicError) -> JSONResponse:
    body: dict = {"error": exc.code, "detail": exc.reason}
    if isinstance(exc, ValidationError):
        body["fields"] = exc.fields
    if isinstance(exc, Conflict):
        body["field"] = exc.field

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
    return JSONResponse(status_code=_status_for(exc), content=body, headers=headers)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed or missing input as a 400 validation_error."""

    fields = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        name = ".".join(loc) or "body"
        if name not in fields:
            fields.append(name)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": ValidationError.code,
            "detail": "invalid or missing fields: " + ", ".join(fields),
            "fields": fields,
        },
    )


def create_app(
    settings: Optional[Settings] = None,
    repositories: Optional[Repositories] = None,
) -> FastAPI:
    """Build the API with its collaborators attached to ``app.state``.

    Handlers reach the repositories and the credential service through
    FastAPI dependencies that read ``app.state``, so tests can build as many
    isolated apps as they like.
    """

    settings = settings or default_settings
    configure_logging(settings.log_level)

    app = FastAPI(title="Clinical Records API")
    app.state.settings = settings
    app.state.credentials = CredentialService(settings)
    app.state.repositories = repositories or build_repositories(settings)

    # Permissive CORS by default for development. Tighten via
    # CORS_ALLOW_ORIGINS in production deployments.
    allow_origins = [origin.strip() for origin in settings.cors_allow_origins.split(",") if origin.strip()] or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClinicError, clinic_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)

    app.include_router(system_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(users_router, prefix="/api")
    app.include_router(patients_router, prefix="/api")
    app.include_router(encounters_router, prefix="/api")

    logger.info("Clinical API ready (repositories: %s)", type(app.state.repositories.users).__name__)
    return app


app = create_app()


def main() -> None:
    """Serve the default app with uvicorn (``clinic-api`` console script)."""
    import uvicorn

    uvicorn.run(
        "src.clinic.main:app",
        host=default_settings.host,
        port=default_settings.port,
        log_level=default_settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
