from typing import Annotated
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from school_backend.database import get_db
from school_backend.interface.auth import CurrentUser, LoginRequest
from school_backend.model.auth import User
from school_backend.permissions.auth import (
    AuthenticationService,
    PrincipalBuilder,
    get_current_principal,
    login_session,
    logout_session,
)
from school_backend.permissions.principal import Principal

auth_router = APIRouter()


def _current_user(user: User, principal: Principal) -> CurrentUser:
    current = CurrentUser.model_validate(user, from_attributes=True)
    current.teacher_id = principal.teacher_id
    current.parent_id = principal.parent_id
    current.student_id = principal.student_id
    return current


@auth_router.post("/login", response_model=CurrentUser)
def login(payload: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """Check credentials and start a signed cookie session"""

    user = AuthenticationService.authenticate_password(payload.email, payload.password, db)
    login_session(request, user)

    return _current_user(user, PrincipalBuilder.build(user.id, db))


@auth_router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
def logout(request: Request):
    logout_session(request)


@auth_router.get("/me", response_model=CurrentUser)
def me(
    principal: Annotated[Principal, Depends(get_current_principal)],
    db: Session = Depends(get_db)
):
    """Get the current authenticated user"""
    return _current_user(db.get(User, principal.user_id), principal)
