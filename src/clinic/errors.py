from __future__ import annotations

from typing import Iterable, List, Optional


class ClinicError(Exception):
    """Base class for failures surfaced to API callers.

    ``code`` is a stable machine-readable identifier; ``reason`` is the
    human-readable explanation. The HTTP layer maps each subclass to a fixed
    status code (see ``src.clinic.main``).
    """

    code = "error"

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class Unauthenticated(ClinicError):
    code = "unauthenticated"

    def __init__(self, reason: str = "not authenticated") -> None:
        super().__init__(reason)


class Forbidden(ClinicError):
    code = "forbidden"


class NotFound(ClinicError):
    code = "not_found"

    def __init__(self, resource: str, reason: Optional[str] = None) -> None:
        super().__init__(reason or f"{resource} not found")
        self.resource = resource


class ValidationError(ClinicError):
    code = "validation_error"

    def __init__(self, fields: Iterable[str], reason: Optional[str] = None) -> None:
        self.fields: List[str] = list(fields)
        super().__init__(reason or "invalid or missing fields: " + ", ".join(self.fields))


class Conflict(ClinicError):
    code = "conflict"

    def __init__(self, field: str, reason: Optional[str] = None) -> None:
        super().__init__(reason or f"{field} already in use")
        self.field = field
