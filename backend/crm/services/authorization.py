"""
Authorization decisions for every request.

A caller is resolved into exactly one access variant:

    AdminAccess         unrestricted: every permission, every record
    CsrAccess(perms)    only the named permissions, only records it created

Route handlers never branch on the role string themselves. They ask the
access object (`permits`, `owns`, `scope`) or call `authorize()`, which
folds both checks into one `Decision`.

The access object is rebuilt from the persisted user on every request, so a
permission revoked by an admin bites on the very next call even though the
caller's session token is still valid.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Union

from sqlalchemy.orm import Query

from crm.core.permissions import ALL_PERMISSIONS, Role, normalize_permissions


class Outcome(str, Enum):
    ALLOW = "allow"
    FORBIDDEN = "forbidden"
    UNAUTHENTICATED = "unauthenticated"


@dataclass(frozen=True)
class Decision:
    outcome: Outcome
    reason: Optional[str] = None
    # which permissions would have satisfied the check (diagnostics only)
    required_permissions: List[str] = field(default_factory=list)

    @property
    def allowed(self) -> bool:
        return self.outcome is Outcome.ALLOW


@dataclass(frozen=True)
class AdminAccess:
    principal_id: int
    role: Role = field(default=Role.ADMIN, init=False)

    @property
    def permissions(self) -> List[str]:
        return list(ALL_PERMISSIONS)

    @property
    def is_admin(self) -> bool:
        return True

    def permits(self, required: Iterable[str]) -> bool:
        return True

    def owns(self, owner_id: Optional[int]) -> bool:
        return True

    def scope(self, query: Query, model) -> Query:
        return query


@dataclass(frozen=True)
class CsrAccess:
    principal_id: int
    granted: frozenset = frozenset()
    role: Role = field(default=Role.CSR, init=False)

    @property
    def permissions(self) -> List[str]:
        return normalize_permissions(self.granted)

    @property
    def is_admin(self) -> bool:
        return False

    def permits(self, required: Iterable[str]) -> bool:
        required = list(required)
        if not required:
            return True
        # any one of the listed permissions is enough
        return any(p in self.granted for p in required)

    def owns(self, owner_id: Optional[int]) -> bool:
        return owner_id is not None and owner_id == self.principal_id

    def scope(self, query: Query, model) -> Query:
        return query.filter(model.created_by_id == self.principal_id)


Access = Union[AdminAccess, CsrAccess]


def access_for(user) -> Access:
    """
    Build the access variant from a persisted user row.

    Anything that is not explicitly an admin gets the restricted variant.
    """
    if user.role == Role.ADMIN.value:
        return AdminAccess(principal_id=user.id)
    return CsrAccess(principal_id=user.id, granted=frozenset(user.permissions or []))


def authorize(
    access: Optional[Access],
    required: Iterable[str] = (),
    owner_id: Optional[int] = None,
    check_owner: bool = False,
) -> Decision:
    """
    Pure decision over (role, permissions, caller id, owner id, required permissions).

    `check_owner` is set by callers that are about to read or mutate one
    specific record; `owner_id` is that record's created_by_id.
    """
    required = list(required)

    if access is None:
        return Decision(Outcome.UNAUTHENTICATED, reason="Not authenticated")

    if not access.permits(required):
        return Decision(
            Outcome.FORBIDDEN,
            reason="You do not have permission to perform this action",
            required_permissions=required,
        )

    if check_owner and not access.owns(owner_id):
        return Decision(Outcome.FORBIDDEN, reason="Not authorized to access this record")

    return Decision(Outcome.ALLOW)
