import logging
from typing import Optional
from fastapi import status
from sqlalchemy.orm import Session

from school_backend.api.exceptions import BadRequestException, ForbiddenException
from school_backend.interface.grades import GradeCreate, GradeGet, GradeInterface, GradeQuery, GradeUpdate, grade_label, summarize_grades
from school_backend.interface.results import ActionResult
from school_backend.model.academics import Grade
from school_backend.model.auth import Role
from school_backend.model.school import Student
from school_backend.permissions.core import apply_scope_overrides, can_perform, ensure_student_in_scope, require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model
from school_backend.services.crud import get_scoped, get_or_404, list_scoped, apply_update

logger = logging.getLogger(__name__)

STUDENT_NOT_IN_CLASS = "Student not found or not in your class"


@service_action
def add_grade(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(GradeCreate, payload)

    if principal.role != Role.TEACHER:
        raise ForbiddenException(detail="You do not have permission to add grades")
    principal.require_teacher_id()

    if not can_perform(principal, Grade, Action.CREATE, db, context={"student_id": entity.student_id}):
        logger.info(f"Teacher {principal.teacher_id} denied grading student {entity.student_id}")
        raise ForbiddenException(detail=STUDENT_NOT_IN_CLASS)

    student = db.get(Student, entity.student_id)

    db_item = Grade(
        **entity.model_dump(),
        grade=grade_label(entity.score),
        teacher_id=student.school_class.teacher_id,
    )
    db.add(db_item)
    db.commit()
    db.refresh(db_item)

    logger.info(f"Grade {db_item.id} for student {db_item.student_id} added by teacher {db_item.teacher_id}")
    return ActionResult.ok(
        GradeGet.model_validate(db_item, from_attributes=True),
        message="Grade added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_grades(principal: Principal, params: Optional[GradeQuery], db: Session) -> ActionResult:
    params = parse_model(GradeQuery, params)
    ensure_student_in_scope(principal, params.student_id, db)
    params = apply_scope_overrides(principal, params)

    items, total = list_scoped(principal, db, params, GradeInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_student_grades(principal: Principal, student_id: str, term: Optional[str], db: Session) -> ActionResult:
    get_or_404(db, Student, student_id)

    if not can_perform(principal, Student, Action.GET, db, resource_id=student_id):
        raise ForbiddenException(detail="You are not authorized to view this student's grades")

    params = GradeQuery(student_id=student_id, term=term, limit=1000)
    items, total = list_scoped(principal, db, params, GradeInterface)
    return ActionResult.ok(items, total=total)


@service_action
def update_grade(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(GradeUpdate, payload)
    get_or_404(db, Grade, id)
    require(principal, Grade, Action.UPDATE, db, resource_id=id, reason="You are not authorized to grade this student")

    db_item = get_scoped(principal, db, Grade, id, Action.UPDATE)

    changes = apply_update(db_item, entity)
    if "score" in changes:
        db_item.grade = grade_label(db_item.score)

    db.commit()
    db.refresh(db_item)

    logger.info(f"Grade {db_item.id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(GradeGet.model_validate(db_item, from_attributes=True), message="Grade updated successfully")


@service_action
def delete_grade(principal: Principal, id: str, db: Session) -> ActionResult:
    get_or_404(db, Grade, id)
    require(principal, Grade, Action.DELETE, db, resource_id=id, reason="You are not authorized to grade this student")

    db_item = get_scoped(principal, db, Grade, id, Action.DELETE)
    db.delete(db_item)
    db.commit()

    logger.info(f"Grade {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Grade deleted successfully")


@service_action
def get_grade_summary(principal: Principal, student_id: Optional[str], db: Session) -> ActionResult:
    if not student_id:
        reason = "Student ID is required"
        raise BadRequestException(detail={"error": reason, "errors": {"student_id": [reason]}})

    get_or_404(db, Student, student_id)
    ensure_student_in_scope(principal, student_id, db)

    grades = (
        db.query(Grade)
        .filter(Grade.student_id == student_id)
        .order_by(Grade.created_at)
        .all()
    )
    return ActionResult.ok(summarize_grades(student_id, grades))
