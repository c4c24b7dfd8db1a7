from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.parents import ParentCreate, ParentGet, ParentList, ParentQuery
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import parents

parent_router = APIRouter()


@parent_router.get("", response_model=list[ParentList])
def list_parents(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: ParentQuery = Depends()
):
    return unwrap_result(parents.get_parents(principal, params, db), response)


@parent_router.post("", response_model=ParentGet)
def register_parent(principal: Annotated[Principal, Depends(get_current_principal)], entity: ParentCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(parents.register_parent(principal, entity, db), response)


@parent_router.get("/{id}", response_model=ParentGet)
def get_parent(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(parents.get_parent(principal, id, db), response)


@parent_router.delete("/{id}")
def delete_parent(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(parents.delete_parent(principal, id, db), response)
