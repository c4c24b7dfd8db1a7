from typing import Annotated, Optional
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.grades import GradeCreate, GradeGet, GradeList, GradeQuery, GradeSummary, GradeUpdate
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import grades

grade_router = APIRouter()


@grade_router.get("", response_model=list[GradeList])
def list_grades(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: GradeQuery = Depends()
):
    """List grades; parents and students only ever see their own family's grades"""
    return unwrap_result(grades.get_grades(principal, params, db), response)


@grade_router.get("/summary", response_model=GradeSummary)
def get_grade_summary(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    student_id: Optional[str] = None,
    db: Session = Depends(get_db)
):
    """Average score, best subject and GPA of one student"""
    return unwrap_result(grades.get_grade_summary(principal, student_id, db), response)


@grade_router.post("", response_model=GradeGet)
def add_grade(principal: Annotated[Principal, Depends(get_current_principal)], entity: GradeCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(grades.add_grade(principal, entity, db), response)


@grade_router.patch("/{id}", response_model=GradeGet)
def update_grade(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: GradeUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(grades.update_grade(principal, id, entity, db), response)


@grade_router.delete("/{id}")
def delete_grade(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(grades.delete_grade(principal, id, db), response)
