from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.users import PasswordChange, UserGet, UserList, UserQuery, UserStats, UserUpdate
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import users

user_router = APIRouter()


@user_router.get("", response_model=list[UserList])
def list_users(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: UserQuery = Depends()
):
    """List user accounts (admin panel)"""
    return unwrap_result(users.get_users(principal, params, db), response)


@user_router.get("/stats", response_model=UserStats)
def get_stats(principal: Annotated[Principal, Depends(get_current_principal)], response: Response, db: Session = Depends(get_db)):
    return unwrap_result(users.get_user_stats(principal, db), response)


@user_router.get("/{id}", response_model=UserGet)
def get_user(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(users.get_user(principal, id, db), response)


@user_router.patch("/{id}", response_model=UserGet)
def update_user(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: UserUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(users.update_user(principal, id, entity, db), response)


@user_router.put("/{id}/password")
def change_password(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: PasswordChange, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(users.change_password(principal, id, entity, db), response)


@user_router.delete("/{id}")
def delete_user(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(users.delete_user(principal, id, db), response)
