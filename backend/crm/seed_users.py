# backend/crm/seed_users.py

"""
Create (or reset) the default admin and CSR accounts.

    python -m crm.seed_users
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from crm.core.database import Base, SessionLocal, engine
from crm.core.permissions import Role
from crm.models import invoice, lead, payment, project  # noqa: F401  (registers tables)
from crm.models.user import User as UserModel
from crm.services.accounts import normalize_email

logger = logging.getLogger(__name__)

SEEDS = [
    {
        "name": "Admin User",
        "email": "admin@example.com",
        "role": Role.ADMIN.value,
        "password": "admin123",
        "permissions": [],
    },
    {
        "name": "CSR User",
        "email": "csr@example.com",
        "role": Role.CSR.value,
        "password": "csr123",
        "permissions": ["view_leads", "create_leads"],
    },
]


def seed_users(db: Optional[Session] = None) -> dict:
    """
    Upsert the seed accounts; existing ones get their password, role and name reset.

    Returns {"created": n, "updated": n}.
    """
    own_session = db is None
    if own_session:
        # make sure tables exist (dev convenience; production runs alembic)
        Base.metadata.create_all(bind=engine)
        db = SessionLocal()

    try:
        created = 0
        updated = 0

        for s in SEEDS:
            email = normalize_email(s["email"])
            existing = db.query(UserModel).filter(UserModel.email == email).first()
            if existing:
                existing.password = s["password"]
                existing.name = s["name"]
                existing.role = s["role"]
                existing.permissions = list(s["permissions"])
                existing.clear_reset_token()
                updated += 1
                logger.info("Updated seed user %s (%s)", email, s["role"])
                continue

            u = UserModel(
                name=s["name"],
                email=email,
                role=s["role"],
                permissions=list(s["permissions"]),
            )
            u.password = s["password"]
            db.add(u)
            created += 1
            logger.info("Created seed user %s (%s)", email, s["role"])

        db.commit()
        return {"created": created, "updated": updated}

    finally:
        if own_session:
            db.close()


def seed_users_if_empty(db: Session) -> int:
    existing = db.query(UserModel).count()
    if existing > 0:
        return 0

    return seed_users(db)["created"]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    result = seed_users()
    print(f"Done. Created {result['created']} user(s). Updated {result['updated']} user(s).")
    print("\nLogin creds:")
    for s in SEEDS:
        print(f" - {s['email']} / {s['password']}")
