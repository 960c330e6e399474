from typing import Literal, get_args

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from crm.core.database import Base, utcnow

LeadSource = Literal["Website", "Referral", "Social Media", "Cold Call", "Email Campaign", "Other"]
LeadStatus = Literal["New", "Contacted", "Qualified", "Converted", "Rejected"]

LEAD_SOURCES = list(get_args(LeadSource))
LEAD_STATUSES = list(get_args(LeadStatus))


class Lead(Base):
    __tablename__ = "leads"

    __table_args__ = (
        Index("ix_leads_created_by_status", "created_by_id", "status"),
        Index("ix_leads_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    name = Column(String, nullable=False)
    email = Column(String, nullable=False, index=True)
    phone = Column(String, nullable=False)

    source = Column(String, nullable=False, default="Other")
    status = Column(String, nullable=False, default="New")
    notes = Column(Text, nullable=True)

    # stamped from the caller on create; SET NULL only if the owner account is deleted
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = relationship("User", lazy="joined")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
