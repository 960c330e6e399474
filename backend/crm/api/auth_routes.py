# backend/crm/api/auth_routes.py

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from fastapi.security import OAuth2PasswordRequestForm
from pydantic import BaseModel, EmailStr
from sqlalchemy.orm import Session

from crm.api.deps_auth import get_current_user, get_db, get_mailer
from crm.core.security import create_access_token
from crm.models.user import User
from crm.services import accounts
from crm.services.authorization import access_for
from crm.services.email import Mailer

router = APIRouter()


class RegisterIn(BaseModel):
    name: str
    email: EmailStr
    password: str


class LoginIn(BaseModel):
    email: str
    password: str


class ForgotPasswordIn(BaseModel):
    email: str


class ResetPasswordIn(BaseModel):
    password: Optional[str] = None


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: str
    permissions: List[str] = []
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class AuthOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


def user_out(user: User) -> UserOut:
    # effective permissions: admins report the whole catalog
    out = UserOut.model_validate(user)
    out.permissions = access_for(user).permissions
    return out


def auth_out(user: User) -> AuthOut:
    return AuthOut(
        access_token=create_access_token({"sub": str(user.id)}),
        user=user_out(user),
    )


@router.post("/register", response_model=AuthOut, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterIn, db: Session = Depends(get_db)):
    # public sign-up always yields a CSR with no permissions; admins are provisioned by seed
    user = accounts.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
    )
    return auth_out(user)


# JSON login
@router.post("/login", response_model=AuthOut)
def login(payload: LoginIn, db: Session = Depends(get_db)):
    user = accounts.authenticate(db, payload.email, payload.password)
    return auth_out(user)


# OAuth2 form endpoint (Swagger Authorize uses this); username carries the email
@router.post("/token", response_model=AuthOut)
def token(form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    user = accounts.authenticate(db, form_data.username or "", form_data.password or "")
    return auth_out(user)


@router.get("/me", response_model=UserOut)
def me(current_user: User = Depends(get_current_user)):
    return user_out(current_user)


@router.post("/logout")
def logout():
    # tokens are stateless; the client drops its copy
    return {"message": "Logged out successfully"}


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordIn,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    accounts.request_password_reset(db, mailer, payload.email)
    return {"success": True, "message": "Password reset email sent successfully"}


@router.post("/reset-password/{token}")
def reset_password(token: str, payload: ResetPasswordIn, db: Session = Depends(get_db)):
    user = accounts.reset_password(db, token, payload.password)
    out = auth_out(user)
    return {
        "success": True,
        "message": "Password reset successful",
        "access_token": out.access_token,
        "token_type": out.token_type,
        "user": out.user,
    }
