from typing import Literal, get_args

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import relationship

from crm.core.database import Base, utcnow

ProjectStatus = Literal["Pending", "In Progress", "Completed", "Cancelled"]

PROJECT_STATUSES = list(get_args(ProjectStatus))


class Project(Base):
    __tablename__ = "projects"

    __table_args__ = (
        CheckConstraint("budget >= 0", name="ck_projects_budget_non_negative"),
        Index("ix_projects_created_by_status", "created_by_id", "status"),
        Index("ix_projects_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    client = Column(String, nullable=False)
    status = Column(String, nullable=False, default="Pending")
    budget = Column(Float, nullable=False, default=0.0)

    start_date = Column(DateTime, default=utcnow)
    end_date = Column(DateTime, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = relationship("User", lazy="joined")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
