from typing import Literal, get_args

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from crm.core.database import Base, utcnow

InvoiceStatus = Literal["Draft", "Pending", "Paid", "Overdue", "Cancelled"]

INVOICE_STATUSES = list(get_args(InvoiceStatus))


class Invoice(Base):
    __tablename__ = "invoices"

    __table_args__ = (
        CheckConstraint("sub_total >= 0", name="ck_invoices_sub_total_non_negative"),
        CheckConstraint("tax >= 0", name="ck_invoices_tax_non_negative"),
        CheckConstraint("discount >= 0", name="ck_invoices_discount_non_negative"),
        CheckConstraint("total_amount >= 0", name="ck_invoices_total_non_negative"),
        Index("ix_invoices_status", "status"),
        Index("ix_invoices_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    # INV-0001 style, assigned on create when the client sends none
    invoice_number = Column(String, unique=True, nullable=False)

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    project = relationship("Project", lazy="joined")

    client_name = Column(String, nullable=False)
    client_email = Column(String, nullable=True)
    client_address = Column(String, nullable=True)

    # [{"name", "quantity", "price", "total"}]
    items = Column(JSON, nullable=False, default=list)

    sub_total = Column(Float, nullable=False)
    tax = Column(Float, nullable=False, default=0.0)
    discount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False)

    status = Column(String, nullable=False, default="Pending")
    issue_date = Column(DateTime, default=utcnow)
    due_date = Column(DateTime, nullable=False)
    notes = Column(Text, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = relationship("User", lazy="joined")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
