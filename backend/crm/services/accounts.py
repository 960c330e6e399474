"""
Principal lifecycle: creation, login, CSR administration and password reset.

Every function takes the session explicitly and commits its own work.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm.core.config import settings
from crm.core.database import utcnow
from crm.core.errors import (
    ConflictError,
    DeliveryFailed,
    NotFoundError,
    Unauthenticated,
    ValidationFailed,
)
from crm.core.permissions import Role, normalize_permissions, unknown_permissions
from crm.core.security import generate_reset_token, hash_reset_token, verify_password
from crm.models.user import User
from crm.services.email import Mailer

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_RESET_TOKEN = "Invalid or expired reset token. Please request a new password reset."


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def check_password_policy(password: Optional[str]) -> None:
    if not password:
        raise ValidationFailed("Please provide new password")
    if len(password) < settings.password_min_length:
        raise ValidationFailed(
            f"Password must be at least {settings.password_min_length} characters long"
        )


def validate_permissions(permissions: Iterable[str]) -> List[str]:
    permissions = list(permissions or [])
    bad = unknown_permissions(permissions)
    if bad:
        raise ValidationFailed(f"Unknown permissions: {', '.join(bad)}")
    return normalize_permissions(permissions)


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == normalize_email(email)).first()


def create_user(
    db: Session,
    *,
    name: str,
    email: str,
    password: str,
    role: Role = Role.CSR,
    permissions: Optional[Iterable[str]] = None,
    created_by_id: Optional[int] = None,
) -> User:
    email = normalize_email(email)
    name = (name or "").strip()
    if not name or not email or not password:
        raise ValidationFailed("Please provide name, email, and password")
    check_password_policy(password)

    if get_by_email(db, email):
        raise ConflictError("User already exists with this email")

    user = User(
        name=name,
        email=email,
        role=Role(role).value,
        permissions=validate_permissions(permissions or []) if role == Role.CSR else [],
        created_by_id=created_by_id,
    )
    user.password = password

    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same address
        db.rollback()
        raise ConflictError("User already exists with this email")

    db.refresh(user)
    logger.info("Created %s user %s", user.role, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    user = get_by_email(db, email)

    # unknown email and wrong password look identical to the caller
    if not user or not verify_password(password, user.password_hash):
        logger.info("Failed login for %s", normalize_email(email))
        raise Unauthenticated(INVALID_CREDENTIALS)

    return user


# ---------- CSR ADMINISTRATION ----------

def list_csrs(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.role == Role.CSR.value)
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


def _get_csr(db: Session, user_id: int, action: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("CSR user not found")
    if user.role != Role.CSR.value:
        raise ValidationFailed(f"Can only {action} CSR users")
    return user


def update_csr_permissions(db: Session, user_id: int, permissions: Iterable[str]) -> User:
    user = _get_csr(db, user_id, "update permissions for")
    user.permissions = validate_permissions(permissions)
    db.commit()
    db.refresh(user)
    logger.info("Permissions for user %s set to %s", user.id, user.permissions)
    return user


def delete_csr(db: Session, user_id: int) -> None:
    user = _get_csr(db, user_id, "delete")
    db.delete(user)
    db.commit()
    logger.info("Deleted CSR user %s", user_id)


# ---------- PASSWORD RESET ----------

def request_password_reset(db: Session, mailer: Mailer, email: str) -> None:
    if not normalize_email(email):
        raise ValidationFailed("Please provide email address")

    user = get_by_email(db, email)
    if not user:
        raise NotFoundError("No user found with this email address")

    token, digest, expires_at = generate_reset_token()

    # last request wins: any earlier outstanding token is overwritten
    user.reset_password_token = digest
    user.reset_password_expire = expires_at
    db.commit()

    if not mailer.send_password_reset(to_email=user.email, name=user.name, reset_token=token):
        user.clear_reset_token()
        db.commit()
        logger.error("Reset email to user %s failed; reset token rolled back", user.id)
        raise DeliveryFailed()

    logger.info("Password reset issued for user %s", user.id)


def reset_password(db: Session, token: str, new_password: str) -> User:
    check_password_policy(new_password)

    user = None
    if token:
        user = (
            db.query(User)
            .filter(
                User.reset_password_token == hash_reset_token(token),
                User.reset_password_expire > utcnow(),
            )
            .first()
        )

    # wrong and expired tokens share one message
    if not user:
        raise ValidationFailed(INVALID_RESET_TOKEN)

    user.password = new_password
    user.clear_reset_token()
    db.commit()
    db.refresh(user)

    logger.info("Password reset completed for user %s", user.id)
    return user
