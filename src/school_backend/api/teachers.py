from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.teachers import TeacherCreate, TeacherGet, TeacherList, TeacherQuery, TeacherUpdate
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import teachers

teacher_router = APIRouter()


@teacher_router.get("", response_model=list[TeacherList])
def list_teachers(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: TeacherQuery = Depends()
):
    return unwrap_result(teachers.get_teachers(principal, params, db), response)


@teacher_router.post("", response_model=TeacherGet)
def register_teacher(principal: Annotated[Principal, Depends(get_current_principal)], entity: TeacherCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(teachers.register_teacher(principal, entity, db), response)


@teacher_router.get("/{id}", response_model=TeacherGet)
def get_teacher(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(teachers.get_teacher(principal, id, db), response)


@teacher_router.patch("/{id}", response_model=TeacherGet)
def update_teacher(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: TeacherUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(teachers.update_teacher(principal, id, entity, db), response)


@teacher_router.delete("/{id}")
def delete_teacher(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(teachers.delete_teacher(principal, id, db), response)
