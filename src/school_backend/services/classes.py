import logging
from typing import Optional
from fastapi import status
from sqlalchemy.orm import Session

from school_backend.api.exceptions import BadRequestException
from school_backend.interface.classes import ClassCreate, ClassGet, ClassInterface, ClassQuery, ClassUpdate
from school_backend.interface.profiles import StudentBrief
from school_backend.interface.results import ActionResult
from school_backend.model.school import SchoolClass, Student, Teacher
from school_backend.permissions.core import apply_scope_overrides, require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.permissions.query_builders import StudentScopeQueryBuilder
from school_backend.services.base import service_action, parse_model, commit_or_conflict
from school_backend.services.crud import get_scoped, get_or_404, list_scoped, apply_update, ensure_unique

logger = logging.getLogger(__name__)

CLASS_NAME_TAKEN = "A class with this name already exists"
CONFLICTS = {"name": CLASS_NAME_TAKEN}


def _class_response(principal: Principal, db_item: SchoolClass, db: Session) -> ClassGet:
    response = ClassGet.model_validate(db_item, from_attributes=True)

    # Families only see their own children in a class roster
    if principal.is_parent or principal.is_student:
        visible = (
            db.query(Student)
            .filter(Student.class_id == db_item.id, Student.id.in_(StudentScopeQueryBuilder.visible_student_ids(principal)))
            .all()
        )
        response.students = [StudentBrief.model_validate(s, from_attributes=True) for s in visible]

    return response


@service_action
def add_class(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(ClassCreate, payload)
    require(principal, SchoolClass, Action.CREATE, db, reason="You do not have permission to add classes")

    if entity.teacher_id is not None:
        get_or_404(db, Teacher, entity.teacher_id)
    ensure_unique(db, SchoolClass.name, entity.name, "name", CLASS_NAME_TAKEN)

    db_item = SchoolClass(**entity.model_dump())
    db.add(db_item)
    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Class {db_item.name} ({db_item.id}) created by {principal.user_id}")
    return ActionResult.ok(
        _class_response(principal, db_item, db),
        message="Class added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_classes(principal: Principal, params: Optional[ClassQuery], db: Session) -> ActionResult:
    params = apply_scope_overrides(principal, parse_model(ClassQuery, params))
    items, total = list_scoped(principal, db, params, ClassInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_class_by_id(principal: Principal, id: str, db: Session) -> ActionResult:
    db_item = get_scoped(principal, db, SchoolClass, id)
    return ActionResult.ok(_class_response(principal, db_item, db))


@service_action
def update_class(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(ClassUpdate, payload)
    require(principal, SchoolClass, Action.UPDATE, db, resource_id=id)

    db_item = get_scoped(principal, db, SchoolClass, id, Action.UPDATE)

    if entity.name is not None and entity.name != db_item.name:
        ensure_unique(db, SchoolClass.name, entity.name, "name", CLASS_NAME_TAKEN, exclude_id=db_item.id)
    if entity.teacher_id is not None:
        get_or_404(db, Teacher, entity.teacher_id)

    changes = apply_update(db_item, entity, nullable=("teacher_id",))
    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Class {db_item.id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(_class_response(principal, db_item, db), message="Class updated successfully")


@service_action
def delete_class(principal: Principal, id: str, db: Session) -> ActionResult:
    require(principal, SchoolClass, Action.DELETE, db, resource_id=id)

    db_item = get_scoped(principal, db, SchoolClass, id, Action.DELETE)

    student_count = db.query(Student.id).filter(Student.class_id == db_item.id).count()
    if student_count > 0:
        raise BadRequestException(
            detail="Cannot delete a class that has students. Reassign or remove the students first."
        )

    db.delete(db_item)
    db.commit()

    logger.info(f"Class {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Class deleted successfully")
