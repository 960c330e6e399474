# backend/crm/api/deps_auth.py

import logging
from typing import Callable, Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from crm.core.database import SessionLocal
from crm.core.errors import Forbidden, NotFoundError, Unauthenticated
from crm.core.security import decode_token
from crm.models.user import User as UserModel
from crm.services.authorization import Access, Outcome, access_for, authorize
from crm.services.email import Mailer

logger = logging.getLogger(__name__)

# Only used by Swagger UI for the "Authorize" flow.
# auto_error=False so a missing header is reported by us, with the same 401 as a bad token.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_mailer() -> Mailer:
    return Mailer()


def get_current_user(
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> UserModel:
    # token must be the raw JWT (OAuth2PasswordBearer strips "Bearer ")
    if not token or not isinstance(token, str):
        raise Unauthenticated()

    try:
        payload = decode_token(token)
    except ValueError:
        raise Unauthenticated()

    sub = payload.get("sub")
    if not sub:
        raise Unauthenticated()

    # sub should be user id
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise Unauthenticated()

    # fresh row every request: role and permissions are never taken from the token
    user = db.get(UserModel, user_id)
    if not user:
        raise Unauthenticated()

    return user


def get_access(user: UserModel = Depends(get_current_user)) -> Access:
    return access_for(user)


def require_admin(access: Access = Depends(get_access)) -> Access:
    if not access.is_admin:
        logger.info("Admin route denied for user %s", access.principal_id)
        raise Forbidden("Admin role required")
    return access


def require_permission(*required: str) -> Callable[..., Access]:
    """
    Dependency factory: any one of `required` is enough (admins always pass).

        access: Access = Depends(require_permission("view_leads"))
    """

    def dependency(access: Access = Depends(get_access)) -> Access:
        decision = authorize(access, required)
        if decision.outcome is Outcome.FORBIDDEN:
            logger.info(
                "Permission denied for user %s; needs one of %s",
                access.principal_id,
                decision.required_permissions,
            )
            raise Forbidden(decision.reason, required_permissions=decision.required_permissions)
        return access

    return dependency


# ---------- OWNERSHIP HELPERS ----------

def ensure_owner(access: Access, record, label: str = "record") -> None:
    decision = authorize(access, owner_id=record.created_by_id, check_owner=True)
    if not decision.allowed:
        logger.info(
            "Ownership denied: user %s on %s %s",
            access.principal_id,
            label,
            record.id,
        )
        raise Forbidden(f"Not authorized to access this {label}")


def load_owned(db: Session, model, record_id: int, access: Access, label: str):
    """
    Fetch one owned record for read/update/delete.

    Existence is checked first, then ownership: a missing record is a 404 for
    everyone, someone else's record is a 403 for a CSR.
    """
    record = db.get(model, record_id)
    if record is None:
        raise NotFoundError(f"{label.capitalize()} not found")
    ensure_owner(access, record, label)
    return record
