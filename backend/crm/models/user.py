from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from crm.core.database import Base, utcnow
from crm.core.security import hash_password


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    # always stored lower-cased
    email = Column(String, unique=True, index=True, nullable=False)

    password_hash = Column(String, nullable=False)

    # "admin" | "csr"
    role = Column(String, nullable=False, default="csr")
    permissions = Column(JSON, nullable=False, default=list)

    # the admin who provisioned this account (not an ownership edge)
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # sha256 digest of the emailed token, never the token itself
    reset_password_token = Column(String, nullable=True, index=True)
    reset_password_expire = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    @property
    def password(self):
        raise AttributeError("password is write-only")

    @password.setter
    def password(self, plaintext: str):
        # the only way a digest gets written, so an untouched password is never re-hashed
        self.password_hash = hash_password(plaintext)

    def clear_reset_token(self):
        self.reset_password_token = None
        self.reset_password_expire = None
