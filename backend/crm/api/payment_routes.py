# backend/crm/api/payment_routes.py

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm.api.common import OwnerOut, ProjectRefOut, apply_updates, line_items, listing, single
from crm.api.deps_auth import get_access, get_db, load_owned, require_permission
from crm.core.errors import ConflictError
from crm.core.permissions import Permission
from crm.models.payment import Payment as PaymentModel, PaymentMethod, PaymentStatus
from crm.models.project import Project as ProjectModel
from crm.services import analytics
from crm.services.authorization import Access

logger = logging.getLogger(__name__)

router = APIRouter()

can_view = require_permission(Permission.VIEW_SALES.value)
can_write = require_permission(Permission.CREATE_SALES.value)


class PaymentItem(BaseModel):
    description: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)
    price: float = Field(ge=0)
    total: Optional[float] = Field(default=None, ge=0)


class Payment(BaseModel):
    id: int
    invoice_number: str
    project_id: int
    project: Optional[ProjectRefOut] = None
    client_name: str
    items: List[PaymentItem]

    sub_total: float
    tax_percent: float
    tax_amount: float
    total_amount: float

    payment_method: str
    status: str
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None

    created_by_id: Optional[int] = None
    created_by: Optional[OwnerOut] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentCreate(BaseModel):
    invoice_number: str = Field(min_length=1)
    project_id: int
    client_name: str = Field(min_length=1)
    items: List[PaymentItem] = Field(min_length=1)

    sub_total: float = Field(ge=0)
    tax_percent: float = Field(default=0, ge=0)
    tax_amount: float = Field(default=0, ge=0)
    total_amount: float = Field(ge=0)

    payment_method: PaymentMethod = "Other"
    status: PaymentStatus = "Pending"
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentUpdate(BaseModel):
    invoice_number: Optional[str] = Field(default=None, min_length=1)
    project_id: Optional[int] = None
    client_name: Optional[str] = Field(default=None, min_length=1)
    items: Optional[List[PaymentItem]] = Field(default=None, min_length=1)

    sub_total: Optional[float] = Field(default=None, ge=0)
    tax_percent: Optional[float] = Field(default=None, ge=0)
    tax_amount: Optional[float] = Field(default=None, ge=0)
    total_amount: Optional[float] = Field(default=None, ge=0)

    payment_method: Optional[PaymentMethod] = None
    status: Optional[PaymentStatus] = None
    payment_date: Optional[datetime] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


def ensure_unique_number(db: Session, number: str, exclude_id: Optional[int] = None):
    q = db.query(PaymentModel).filter(PaymentModel.invoice_number == number)
    if exclude_id is not None:
        q = q.filter(PaymentModel.id != exclude_id)
    if q.first():
        raise ConflictError("Payment with this invoice number already exists")


def commit_unique(db: Session) -> None:
    # the pre-check above can lose a race; the unique index is the final word
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Payment with this invoice number already exists")


@router.get("/stats")
def payment_stats(
    db: Session = Depends(get_db),
    access: Access = Depends(get_access),
):
    payments = access.scope(db.query(PaymentModel), PaymentModel).all()
    return single(
        {
            "total": len(payments),
            "total_revenue": analytics.paid_revenue(payments),
            "by_status": analytics.count_by(payments, "status"),
        }
    )


@router.get("")
def list_payments(
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    q = access.scope(db.query(PaymentModel), PaymentModel)
    payments = q.order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc()).all()
    return listing([Payment.model_validate(p) for p in payments])


@router.get("/{payment_id}")
def get_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    payment = load_owned(db, PaymentModel, payment_id, access, "payment")
    return single(Payment.model_validate(payment))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_payment(
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    # a CSR can only bill against its own projects
    load_owned(db, ProjectModel, payload.project_id, access, "project")
    ensure_unique_number(db, payload.invoice_number.strip())

    data = payload.model_dump(exclude={"items"})
    data["invoice_number"] = payload.invoice_number.strip()
    payment = PaymentModel(
        **data,
        items=line_items(payload.items),
        created_by_id=access.principal_id,
    )

    db.add(payment)
    commit_unique(db)
    db.refresh(payment)

    logger.info("Payment %s created by user %s", payment.id, access.principal_id)
    return single(Payment.model_validate(payment))


@router.put("/{payment_id}")
def update_payment(
    payment_id: int,
    payload: PaymentUpdate,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    payment = load_owned(db, PaymentModel, payment_id, access, "payment")

    if payload.project_id is not None and payload.project_id != payment.project_id:
        load_owned(db, ProjectModel, payload.project_id, access, "project")
    if payload.invoice_number:
        payload.invoice_number = payload.invoice_number.strip()
        ensure_unique_number(db, payload.invoice_number, exclude_id=payment.id)

    apply_updates(payment, payload, nullable=("payment_date", "transaction_id", "notes"))
    if payload.items is not None:
        payment.items = line_items(payload.items)

    commit_unique(db)
    db.refresh(payment)
    return single(Payment.model_validate(payment))


@router.delete("/{payment_id}")
def delete_payment(
    payment_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    payment = load_owned(db, PaymentModel, payment_id, access, "payment")

    db.delete(payment)
    db.commit()

    logger.info("Payment %s deleted by user %s", payment_id, access.principal_id)
    return {"success": True, "message": "Payment deleted"}
