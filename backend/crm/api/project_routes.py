# backend/crm/api/project_routes.py

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from crm.api.common import OwnerOut, apply_updates, listing, single
from crm.api.deps_auth import get_db, load_owned, require_permission
from crm.core.database import utcnow
from crm.core.errors import ConflictError
from crm.core.permissions import Permission
from crm.models.invoice import Invoice as InvoiceModel
from crm.models.payment import Payment as PaymentModel
from crm.models.project import Project as ProjectModel, ProjectStatus
from crm.services import analytics
from crm.services.authorization import Access

logger = logging.getLogger(__name__)

router = APIRouter()

can_view = require_permission(Permission.VIEW_SALES.value)
can_write = require_permission(Permission.CREATE_SALES.value)


class Project(BaseModel):
    id: int
    name: str
    client: str
    status: str
    budget: float
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    created_by_id: Optional[int] = None
    created_by: Optional[OwnerOut] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    client: str = Field(min_length=1)
    budget: float = Field(ge=0)
    status: ProjectStatus = "Pending"
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


class ProjectUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    client: Optional[str] = Field(default=None, min_length=1)
    budget: Optional[float] = Field(default=None, ge=0)
    status: Optional[ProjectStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


@router.get("/stats")
def project_stats(
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    projects = access.scope(db.query(ProjectModel), ProjectModel).all()
    return single(
        {
            "total": len(projects),
            "total_revenue": analytics.sum_of(projects, "budget"),
            "by_status": analytics.count_and_sum_by(projects, "status", "budget"),
        }
    )


@router.get("")
def list_projects(
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    q = access.scope(db.query(ProjectModel), ProjectModel)
    projects = q.order_by(ProjectModel.created_at.desc(), ProjectModel.id.desc()).all()
    return listing([Project.model_validate(p) for p in projects])


@router.get("/{project_id}")
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(can_view),
):
    p = load_owned(db, ProjectModel, project_id, access, "project")
    return single(Project.model_validate(p))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    p = ProjectModel(
        name=payload.name.strip(),
        client=payload.client.strip(),
        budget=payload.budget,
        status=payload.status,
        start_date=payload.start_date or utcnow(),
        end_date=payload.end_date,
        created_by_id=access.principal_id,
    )

    db.add(p)
    db.commit()
    db.refresh(p)

    logger.info("Project %s created by user %s", p.id, access.principal_id)
    return single(Project.model_validate(p))


@router.put("/{project_id}")
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    p = load_owned(db, ProjectModel, project_id, access, "project")

    apply_updates(p, payload, nullable=("end_date",))

    db.commit()
    db.refresh(p)
    return single(Project.model_validate(p))


@router.delete("/{project_id}")
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    access: Access = Depends(can_write),
):
    p = load_owned(db, ProjectModel, project_id, access, "project")

    # payments and invoices keep a hard reference to their project
    in_use = (
        db.query(PaymentModel.id).filter(PaymentModel.project_id == p.id).first()
        or db.query(InvoiceModel.id).filter(InvoiceModel.project_id == p.id).first()
    )
    if in_use:
        raise ConflictError("Project has payments or invoices; delete those first")

    db.delete(p)
    db.commit()

    logger.info("Project %s deleted by user %s", project_id, access.principal_id)
    return {"success": True, "message": "Project deleted successfully"}
