import logging
from typing import Optional
from fastapi import status
from sqlalchemy.orm import Session

from school_backend.interface.passwords import get_password_hash
from school_backend.interface.results import ActionResult
from school_backend.interface.students import StudentCreate, StudentGet, StudentInterface, StudentQuery, StudentUpdate
from school_backend.model.auth import Role, User
from school_backend.model.school import Parent, SchoolClass, Student
from school_backend.permissions.core import apply_scope_overrides, require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model, commit_or_conflict
from school_backend.services.crud import get_scoped, get_or_404, list_scoped, apply_update, ensure_unique

logger = logging.getLogger(__name__)

ADMISSION_NUMBER_TAKEN = "A student with this admission number already exists"
EMAIL_TAKEN = "A user with this email already exists"
CONFLICTS = {"admission_number": ADMISSION_NUMBER_TAKEN, "email": EMAIL_TAKEN}


@service_action
def register_student(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(StudentCreate, payload)
    require(principal, Student, Action.CREATE, db, reason="You do not have permission to register students")

    get_or_404(db, SchoolClass, entity.class_id, "Class")
    get_or_404(db, Parent, entity.parent_id, "Parent")
    ensure_unique(db, Student.admission_number, entity.admission_number, "admission_number", ADMISSION_NUMBER_TAKEN)
    if entity.email is not None:
        ensure_unique(db, User.email, entity.email, "email", EMAIL_TAKEN)

    db_item = Student(**entity.model_dump(exclude={"email", "password"}))

    # Login account and student record are committed together
    if entity.email is not None:
        db_item.user = User(
            name=f"{entity.first_name} {entity.last_name}",
            email=entity.email,
            password=get_password_hash(entity.password),
            role=Role.STUDENT,
        )

    db.add(db_item)
    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Student {db_item.admission_number} ({db_item.id}) registered by {principal.user_id}")
    return ActionResult.ok(
        StudentGet.model_validate(db_item, from_attributes=True),
        message="Student registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_students(principal: Principal, params: Optional[StudentQuery], db: Session) -> ActionResult:
    params = apply_scope_overrides(principal, parse_model(StudentQuery, params))
    items, total = list_scoped(principal, db, params, StudentInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_student(principal: Principal, id: str, db: Session) -> ActionResult:
    db_item = get_scoped(principal, db, Student, id)
    return ActionResult.ok(StudentGet.model_validate(db_item, from_attributes=True))


@service_action
def update_student(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(StudentUpdate, payload)
    require(principal, Student, Action.UPDATE, db, resource_id=id)

    db_item = get_scoped(principal, db, Student, id, Action.UPDATE)

    if entity.admission_number is not None and entity.admission_number != db_item.admission_number:
        ensure_unique(db, Student.admission_number, entity.admission_number, "admission_number", ADMISSION_NUMBER_TAKEN, exclude_id=db_item.id)
    if entity.class_id is not None:
        get_or_404(db, SchoolClass, entity.class_id, "Class")
    if entity.parent_id is not None:
        get_or_404(db, Parent, entity.parent_id, "Parent")

    changes = apply_update(db_item, entity, nullable=("address",))

    if db_item.user is not None and ("first_name" in changes or "last_name" in changes):
        db_item.user.name = db_item.full_name

    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Student {db_item.id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(StudentGet.model_validate(db_item, from_attributes=True), message="Student updated successfully")


@service_action
def delete_student(principal: Principal, id: str, db: Session) -> ActionResult:
    require(principal, Student, Action.DELETE, db, resource_id=id)

    db_item = get_scoped(principal, db, Student, id, Action.DELETE)
    user = db_item.user

    db.delete(db_item)
    if user is not None:
        db.delete(user)
    db.commit()

    logger.info(f"Student {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Student deleted successfully")
