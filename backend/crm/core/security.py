# backend/crm/core/security.py

import hashlib
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

from jose import jwt, JWTError
from passlib.context import CryptContext

from crm.core.config import settings
from crm.core.database import utcnow

# pbkdf2_sha256 only: salted, rounds tunable from settings
pwd_context = CryptContext(
    schemes=["pbkdf2_sha256"],
    deprecated="auto",
    pbkdf2_sha256__rounds=settings.password_hash_rounds,
)

SECRET_KEY = settings.jwt_secret_key
ALGORITHM = settings.jwt_algorithm

ACCESS_TOKEN_EXPIRE = timedelta(days=settings.access_token_expire_days)
RESET_TOKEN_EXPIRE = timedelta(minutes=settings.reset_token_expire_minutes)


# ---------- PASSWORDS ----------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    if not hashed_password or not plain_password:
        return False

    # unknown or corrupt digests are a mismatch, not a 500
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


# ---------- SESSION TOKENS ----------

def create_access_token(data: dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or ACCESS_TOKEN_EXPIRE)
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Bad signature, wrong key, garbage and expiry all end up here as ValueError.
    """
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        raise ValueError("Invalid token") from e


# ---------- PASSWORD RESET TOKENS ----------

def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def generate_reset_token() -> Tuple[str, str, datetime]:
    """
    Returns (plaintext, digest, expires_at).

    Only the digest and expiry are persisted; the plaintext goes out by email once.
    """
    token = secrets.token_hex(32)
    return token, hash_reset_token(token), utcnow() + RESET_TOKEN_EXPIRE
