from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.classes import ClassCreate, ClassGet, ClassList, ClassQuery, ClassUpdate
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import classes

class_router = APIRouter()


@class_router.get("", response_model=list[ClassList])
def list_classes(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: ClassQuery = Depends()
):
    """List the classes visible to the current user"""
    return unwrap_result(classes.get_classes(principal, params, db), response)


@class_router.post("", response_model=ClassGet)
def create_class(principal: Annotated[Principal, Depends(get_current_principal)], entity: ClassCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(classes.add_class(principal, entity, db), response)


@class_router.get("/{id}", response_model=ClassGet)
def get_class(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(classes.get_class_by_id(principal, id, db), response)


@class_router.patch("/{id}", response_model=ClassGet)
def update_class(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: ClassUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(classes.update_class(principal, id, entity, db), response)


@class_router.delete("/{id}")
def delete_class(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(classes.delete_class(principal, id, db), response)
