# backend/crm/api/admin_routes.py

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from crm.api.common import listing, single
from crm.api.deps_auth import get_db, require_admin
from crm.core.permissions import ALL_PERMISSIONS, PERMISSION_LABELS, Permission, Role
from crm.services import accounts
from crm.services.authorization import Access

# every route here is admin only
router = APIRouter(dependencies=[Depends(require_admin)])


class CsrOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    permissions: List[str] = []
    created_by_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CsrCreate(BaseModel):
    name: str
    email: EmailStr
    password: str
    permissions: List[str] = []


class PermissionsUpdate(BaseModel):
    permissions: List[str]


@router.get("/csrs")
def list_csrs(db: Session = Depends(get_db)):
    return listing([CsrOut.model_validate(u) for u in accounts.list_csrs(db)])


@router.post("/csrs", status_code=status.HTTP_201_CREATED)
def create_csr(
    payload: CsrCreate,
    db: Session = Depends(get_db),
    admin: Access = Depends(require_admin),
):
    csr = accounts.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=Role.CSR,
        permissions=payload.permissions,
        created_by_id=admin.principal_id,
    )
    out = single(CsrOut.model_validate(csr))
    out["message"] = "CSR user created successfully"
    return out


@router.put("/csrs/{user_id}/permissions")
def update_csr_permissions(
    user_id: int,
    payload: PermissionsUpdate,
    db: Session = Depends(get_db),
):
    csr = accounts.update_csr_permissions(db, user_id, payload.permissions)
    out = single(CsrOut.model_validate(csr))
    out["message"] = "Permissions updated successfully"
    return out


@router.delete("/csrs/{user_id}")
def delete_csr(user_id: int, db: Session = Depends(get_db)):
    accounts.delete_csr(db, user_id)
    return {"success": True, "message": "CSR user deleted successfully"}


@router.get("/permissions")
def list_permissions():
    return single(
        [
            {"value": p, "label": PERMISSION_LABELS[Permission(p)]}
            for p in ALL_PERMISSIONS
        ]
    )
