from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.grades import GradeList
from school_backend.interface.students import StudentCreate, StudentGet, StudentList, StudentQuery, StudentUpdate
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import grades, students

student_router = APIRouter()


@student_router.get("", response_model=list[StudentList])
def list_students(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: StudentQuery = Depends()
):
    """List students within the current user's scope"""
    return unwrap_result(students.get_students(principal, params, db), response)


@student_router.post("", response_model=StudentGet)
def register_student(principal: Annotated[Principal, Depends(get_current_principal)], entity: StudentCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(students.register_student(principal, entity, db), response)


@student_router.get("/{id}", response_model=StudentGet)
def get_student(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(students.get_student(principal, id, db), response)


@student_router.get("/{id}/grades", response_model=list[GradeList])
def get_student_grades(
    principal: Annotated[Principal, Depends(get_current_principal)],
    id: str,
    response: Response,
    term: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Grades of one student, optionally narrowed to a term"""
    return unwrap_result(grades.get_student_grades(principal, id, term, db), response)


@student_router.patch("/{id}", response_model=StudentGet)
def update_student(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: StudentUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(students.update_student(principal, id, entity, db), response)


@student_router.delete("/{id}")
def delete_student(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(students.delete_student(principal, id, db), response)
