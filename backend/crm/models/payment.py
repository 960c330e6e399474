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

PaymentMethod = Literal[
    "Cash",
    "Bank Transfer",
    "Credit Card",
    "Debit Card",
    "Cheque",
    "Online Payment",
    "Other",
]
PaymentStatus = Literal["Pending", "Paid", "Failed", "Refunded"]

PAYMENT_METHODS = list(get_args(PaymentMethod))
PAYMENT_STATUSES = list(get_args(PaymentStatus))


class Payment(Base):
    __tablename__ = "payments"

    __table_args__ = (
        CheckConstraint("sub_total >= 0", name="ck_payments_sub_total_non_negative"),
        CheckConstraint("tax_percent >= 0", name="ck_payments_tax_percent_non_negative"),
        CheckConstraint("tax_amount >= 0", name="ck_payments_tax_amount_non_negative"),
        CheckConstraint("total_amount >= 0", name="ck_payments_total_non_negative"),
        Index("ix_payments_status", "status"),
        Index("ix_payments_created_at", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True)

    invoice_number = Column(String, unique=True, nullable=False)

    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    project = relationship("Project", lazy="joined")

    client_name = Column(String, nullable=False)

    # [{"description", "quantity", "price", "total"}]
    items = Column(JSON, nullable=False, default=list)

    sub_total = Column(Float, nullable=False, default=0.0)
    tax_percent = Column(Float, nullable=False, default=0.0)
    tax_amount = Column(Float, nullable=False, default=0.0)
    total_amount = Column(Float, nullable=False)

    payment_method = Column(String, nullable=False, default="Other")
    status = Column(String, nullable=False, default="Pending")
    payment_date = Column(DateTime, nullable=True)
    transaction_id = Column(String, nullable=True)
    notes = Column(Text, nullable=True)

    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_by = relationship("User", lazy="joined")

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
