# backend/crm/api/lead_routes.py

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.orm import Session

from crm.api.common import OwnerOut, apply_updates, listing, single
from crm.api.deps_auth import get_access, get_db, load_owned, require_permission
from crm.core.errors import ConflictError
from crm.core.permissions import Permission
from crm.models.lead import Lead as LeadModel, LeadSource, LeadStatus
from crm.services import analytics
from crm.services.authorization import Access

logger = logging.getLogger(__name__)

router = APIRouter()

PHONE_PATTERN = r"^[\d\s\-\+\(\)]+$"


# ---------- SCHEMAS ----------

class Lead(BaseModel):
    id: int
    name: str
    email: str
    phone: str
    source: str
    status: str
    notes: Optional[str] = None

    created_by_id: Optional[int] = None
    created_by: Optional[OwnerOut] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class LeadCreate(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    phone: str = Field(pattern=PHONE_PATTERN)
    source: LeadSource = "Other"
    status: LeadStatus = "New"
    notes: Optional[str] = None


class LeadUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)
    source: Optional[LeadSource] = None
    status: Optional[LeadStatus] = None
    notes: Optional[str] = None


def ensure_unique_email(db: Session, email: str, exclude_id: Optional[int] = None):
    q = db.query(LeadModel).filter(LeadModel.email == email)
    if exclude_id is not None:
        q = q.filter(LeadModel.id != exclude_id)
    if q.first():
        raise ConflictError("Lead with this email already exists")


# ---------- ROUTES ----------

# stats must be registered before /{lead_id}
@router.get("/stats")
def lead_stats(
    db: Session = Depends(get_db),
    access: Access = Depends(get_access),
):
    leads = access.scope(db.query(LeadModel), LeadModel).all()
    return single(
        {
            "total": len(leads),
            "by_status": analytics.count_by(leads, "status"),
        }
    )


@router.get("")
def list_leads(
    db: Session = Depends(get_db),
    access: Access = Depends(require_permission(Permission.VIEW_LEADS.value)),
):
    q = access.scope(db.query(LeadModel), LeadModel)
    leads = q.order_by(LeadModel.created_at.desc(), LeadModel.id.desc()).all()
    return listing([Lead.model_validate(x) for x in leads])


@router.get("/{lead_id}")
def get_lead(
    lead_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(require_permission(Permission.VIEW_LEADS.value)),
):
    lead = load_owned(db, LeadModel, lead_id, access, "lead")
    return single(Lead.model_validate(lead))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_lead(
    payload: LeadCreate,
    db: Session = Depends(get_db),
    access: Access = Depends(require_permission(Permission.CREATE_LEADS.value)),
):
    email = payload.email.strip().lower()
    ensure_unique_email(db, email)

    lead = LeadModel(
        name=payload.name.strip(),
        email=email,
        phone=payload.phone.strip(),
        source=payload.source,
        status=payload.status,
        notes=payload.notes,
        created_by_id=access.principal_id,
    )

    db.add(lead)
    db.commit()
    db.refresh(lead)

    logger.info("Lead %s created by user %s", lead.id, access.principal_id)
    return single(Lead.model_validate(lead))


@router.put("/{lead_id}")
def update_lead(
    lead_id: int,
    payload: LeadUpdate,
    db: Session = Depends(get_db),
    access: Access = Depends(require_permission(Permission.EDIT_LEADS.value)),
):
    lead = load_owned(db, LeadModel, lead_id, access, "lead")

    if payload.email:
        payload.email = payload.email.strip().lower()
        if payload.email != lead.email:
            ensure_unique_email(db, payload.email, exclude_id=lead.id)

    apply_updates(lead, payload, nullable=("notes",))

    db.commit()
    db.refresh(lead)
    return single(Lead.model_validate(lead))


@router.delete("/{lead_id}")
def delete_lead(
    lead_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(require_permission(Permission.DELETE_LEADS.value)),
):
    lead = load_owned(db, LeadModel, lead_id, access, "lead")

    db.delete(lead)
    db.commit()

    logger.info("Lead %s deleted by user %s", lead_id, access.principal_id)
    return {"success": True, "message": "Lead deleted successfully"}
