# backend/crm/api/invoice_routes.py

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crm.api.common import OwnerOut, ProjectRefOut, apply_updates, line_items, listing, single
from crm.api.deps_auth import get_access, get_db, load_owned, require_permission
from crm.core.errors import ConflictError
from crm.core.permissions import Permission
from crm.models.invoice import Invoice as InvoiceModel, InvoiceStatus
from crm.models.project import Project as ProjectModel
from crm.services import analytics
from crm.services.authorization import Access

logger = logging.getLogger(__name__)

router = APIRouter()

can_view = require_permission(Permission.VIEW_SALES.value)
can_write = require_permission(Permission.CREATE_SALES.value)


class InvoiceItem(BaseModel):
    name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    price: float = Field(ge=0)
    total: Optional[float] = Field(default=None, ge=0)


class Invoice(BaseModel):
    id: int
    invoice_number: str
    project_id: int
    project: Optional[ProjectRefOut] = None

    client_name: str
    client_email: Optional[str] = None
    client_address: Optional[str] = None

    items: List[InvoiceItem]
    sub_total: float
    tax: float
    discount: float
    total_amount: float

    status: str
    issue_date: Optional[datetime] = None
    due_date: datetime
    notes: Optional[str] = None

    created_by_id: Optional[int] = None
    created_by: Optional[OwnerOut] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    invoice_number: Optional[str] = None
    project_id: int
    client_name: str = Field(min_length=1)
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None

    items: List[InvoiceItem] = Field(min_length=1)
    sub_total: float = Field(ge=0)
    tax: float = Field(default=0, ge=0)
    discount: float = Field(default=0, ge=0)
    total_amount: float = Field(ge=0)

    status: InvoiceStatus = "Pending"
    issue_date: Optional[datetime] = None
    due_date: datetime
    notes: Optional[str] = None


class InvoiceUpdate(BaseModel):
    client_name: Optional[str] = Field(default=None, min_length=1)
    client_email: Optional[EmailStr] = None
    client_address: Optional[str] = None

    items: Optional[List[InvoiceItem]] = Field(default=None, min_length=1)
    sub_total: Optional[float] = Field(default=None, ge=0)
    tax: Optional[float] = Field(default=None, ge=0)
    discount: Optional[float] = Field(default=None, ge=0)
    total_amount: Optional[float] = Field(default=None, ge=0)

    status: Optional[InvoiceStatus] = None
    issue_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    notes: Optional[str] = None


def number_taken(db: Session, number: str) -> bool:
    return db.query(InvoiceModel.id).filter(InvoiceModel.invoice_number == number).first() is not None


def ensure_unique_number(db: Session, number: str) -> None:
    if number_taken(db, number):
        raise ConflictError("Invoice with this number already exists")


def next_invoice_number(db: Session) -> str:
    # start past the highest id so deletions never recycle a number,
    # then step over any INV-NNNN a client already chose by hand
    candidate = (db.query(func.max(InvoiceModel.id)).scalar() or 0) + 1
    while number_taken(db, f"INV-{candidate:04d}"):
        candidate += 1
    return f"INV-{candidate:04d}"


@router.get("/stats")
def invoice_stats(
    db: Session = Depends(get_db),
    access: Access = Depends(get_access),
):
    invoices = access.scope(db.query(InvoiceModel), InvoiceModel).all()
    paid = [i for i in invoices if i.status == analytics.PAID]
    return single(
        {
            "total": len(invoices),
            "total_revenue": analytics.sum_of(paid, "total_amount"),
            "by_status": analytics.count_by(invoices, "status"),
        }
    )


@router.get("")
def list_invoices(
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    q = access.scope(db.query(InvoiceModel), InvoiceModel)
    invoices = q.order_by(InvoiceModel.created_at.desc(), InvoiceModel.id.desc()).all()
    return listing([Invoice.model_validate(i) for i in invoices])


@router.get("/{invoice_id}")
def get_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    invoice = load_owned(db, InvoiceModel, invoice_id, access, "invoice")
    return single(Invoice.model_validate(invoice))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_invoice(
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    load_owned(db, ProjectModel, payload.project_id, access, "project")

    number = (payload.invoice_number or "").strip() or next_invoice_number(db)
    ensure_unique_number(db, number)

    data = payload.model_dump(exclude={"items", "invoice_number", "issue_date"})
    invoice = InvoiceModel(
        **data,
        invoice_number=number,
        items=line_items(payload.items),
        created_by_id=access.principal_id,
    )
    if payload.issue_date:
        invoice.issue_date = payload.issue_date

    db.add(invoice)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent create for the same number
        db.rollback()
        raise ConflictError("Invoice with this number already exists")
    db.refresh(invoice)

    logger.info("Invoice %s created by user %s", invoice.invoice_number, access.principal_id)
    return single(Invoice.model_validate(invoice))


@router.put("/{invoice_id}")
def update_invoice(
    invoice_id: int,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    invoice = load_owned(db, InvoiceModel, invoice_id, access, "invoice")

    apply_updates(invoice, payload, nullable=("client_email", "client_address", "notes"))
    if payload.items is not None:
        invoice.items = line_items(payload.items)

    db.commit()
    db.refresh(invoice)
    return single(Invoice.model_validate(invoice))


@router.delete("/{invoice_id}")
def delete_invoice(
    invoice_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    invoice = load_owned(db, InvoiceModel, invoice_id, access, "invoice")

    db.delete(invoice)
    db.commit()

    logger.info("Invoice %s deleted by user %s", invoice_id, access.principal_id)
    return {"success": True, "message": "Invoice deleted successfully"}
