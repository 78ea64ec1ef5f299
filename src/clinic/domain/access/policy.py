"""Role- and ownership-based access decisions.

Every rule lives in :data:`POLICY`; handlers never test roles inline. The
engine is a pure function of its inputs: it never looks up records, so a
caller without permission is refused before anyone checks whether the target
exists.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from src.clinic.domain.models.identity import Identity
from src.clinic.domain.models.user import UserRole
from src.clinic.errors import Forbidden, Unauthenticated

logger = logging.getLogger("access")


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"


class ResourceKind(str, Enum):
    USER = "user"
    PATIENT = "patient"
    ENCOUNTER = "encounter"


class Denial(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


NOT_AUTHENTICATED = "not authenticated"
INSUFFICIENT_ROLE = "forbidden: insufficient role permissions"
SELF_OR_ADMIN_ONLY = "forbidden: self or admin only"
ROLE_CHANGE_REQUIRES_ADMIN = "forbidden: role change requires admin"

_ALL_ROLES = frozenset(UserRole)
_ADMIN = frozenset({UserRole.ADMIN})

# resource -> action -> roles allowed on *any* record of that resource.
# Biller encounter updates are granted here and narrowed further by the
# encounter lifecycle rules.
POLICY: Mapping[ResourceKind, Mapping[Action, FrozenSet[UserRole]]] = {
    ResourceKind.USER: {
        Action.CREATE: _ADMIN,
        Action.READ: _ADMIN,
        Action.LIST: _ADMIN,
        Action.UPDATE: _ADMIN,
        Action.DELETE: _ADMIN,
    },
    ResourceKind.PATIENT: {
        Action.CREATE: frozenset({UserRole.PROVIDER, UserRole.ADMIN}),
        Action.READ: _ALL_ROLES,
        Action.LIST: _ALL_ROLES,
        Action.UPDATE: frozenset({UserRole.PROVIDER, UserRole.ADMIN}),
        Action.DELETE: _ADMIN,
    },
    ResourceKind.ENCOUNTER: {
        Action.CREATE: frozenset({UserRole.PROVIDER, UserRole.SCRIBE, UserRole.ADMIN}),
        Action.READ: _ALL_ROLES,
        Action.LIST: _ALL_ROLES,
        Action.UPDATE: frozenset({UserRole.PROVIDER, UserRole.BILLER, UserRole.ADMIN}),
        Action.DELETE: _ADMIN,
    },
}

# (resource, action) pairs a non-admin may perform on the record whose id is
# their own subject id.
SELF_SERVICE: FrozenSet[Tuple[ResourceKind, Action]] = frozenset(
    {(ResourceKind.USER, Action.READ), (ResourceKind.USER, Action.UPDATE)}
)

# Fields of a self-owned record that only an admin may change.
ADMIN_ONLY_FIELDS: Mapping[ResourceKind, FrozenSet[str]] = {
    ResourceKind.USER: frozenset({"role"}),
}

_GRANTS: FrozenSet[Tuple[UserRole, ResourceKind, Action]] = frozenset(
    (role, kind, action)
    for kind, actions in POLICY.items()
    for action, roles in actions.items()
    for role in roles
)


def is_granted(role: UserRole, kind: ResourceKind, action: Action) -> bool:
    return (role, kind, action) in _GRANTS


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None
    denial: Optional[Denial] = None

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, denial: Denial = Denial.FORBIDDEN) -> "Decision":
        return cls(allowed=False, reason=reason, denial=denial)

    def raise_for_denial(self) -> None:
        """Raise the matching API error when this decision is a DENY."""

        if self.allowed:
            return
        if self.denial == Denial.UNAUTHENTICATED:
            raise Unauthenticated(self.reason or NOT_AUTHENTICATED)
        raise Forbidden(self.reason or INSUFFICIENT_ROLE)


def authorize(
    identity: Optional[Identity],
    action: Action,
    kind: ResourceKind,
    *,
    target_id: Optional[int] = None,
    fields: Iterable[str] = (),
) -> Decision:
    """Decide whether ``identity`` may perform ``action`` on ``kind``.

    ``target_id`` is the id named in the request path; it only matters for
    self-service resources (users), where it is compared against the caller's
    subject id without loading the record. ``fields`` are the attribute names
    present in an update payload.
    """

    if identity is None:
        return _logged(Decision.deny(NOT_AUTHENTICATED, Denial.UNAUTHENTICATED), None, action, kind, target_id)

    if is_granted(identity.role, kind, action):
        return Decision.allow()

    if (kind, action) in SELF_SERVICE:
        if target_id is None or target_id != identity.subject_id:
            return _logged(Decision.deny(SELF_OR_ADMIN_ONLY), identity, action, kind, target_id)
        restricted = ADMIN_ONLY_FIELDS.get(kind, frozenset()).intersection(fields)
        if action == Action.UPDATE and restricted:
            return _logged(Decision.deny(ROLE_CHANGE_REQUIRES_ADMIN), identity, action, kind, target_id)
        return Decision.allow()

    return _logged(Decision.deny(INSUFFICIENT_ROLE), identity, action, kind, target_id)


def _logged(
    decision: Decision,
    identity: Optional[Identity],
    action: Action,
    kind: ResourceKind,
    target_id: Optional[int],
) -> Decision:
    logger.info(
        json.dumps(
            {
                "decision": "deny",
                "action": action.value,
                "resource": kind.value,
                "role": identity.role.value if identity else None,
                "subject": identity.subject_id if identity else None,
                "target_id": target_id,
                "reason": decision.reason,
            }
        )
    )
    return decision
