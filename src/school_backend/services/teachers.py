import logging
from typing import Optional
from fastapi import status
from sqlalchemy.orm import Session

from school_backend.api.exceptions import BadRequestException
from school_backend.interface.passwords import get_password_hash
from school_backend.interface.results import ActionResult
from school_backend.interface.teachers import TeacherCreate, TeacherGet, TeacherInterface, TeacherQuery, TeacherUpdate
from school_backend.model.auth import Role, User
from school_backend.model.school import SchoolClass, Teacher
from school_backend.permissions.core import require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model, commit_or_conflict
from school_backend.services.crud import get_scoped, list_scoped, ensure_unique

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "A user with this email already exists"
CONFLICTS = {"email": EMAIL_TAKEN}

USER_FIELDS = ("name", "email")


@service_action
def register_teacher(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(TeacherCreate, payload)
    require(principal, Teacher, Action.CREATE, db, reason="You do not have permission to register teachers")

    ensure_unique(db, User.email, entity.email, "email", EMAIL_TAKEN)

    db_item = Teacher(
        department=entity.department,
        qualification=entity.qualification,
        contact_number=entity.contact_number,
        address=entity.address,
        user=User(
            name=entity.name,
            email=entity.email,
            password=get_password_hash(entity.password),
            role=Role.TEACHER,
        ),
    )

    db.add(db_item)
    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Teacher {db_item.id} registered by {principal.user_id}")
    return ActionResult.ok(
        TeacherGet.model_validate(db_item, from_attributes=True),
        message="Teacher registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_teachers(principal: Principal, params: Optional[TeacherQuery], db: Session) -> ActionResult:
    items, total = list_scoped(principal, db, parse_model(TeacherQuery, params), TeacherInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_teacher(principal: Principal, id: str, db: Session) -> ActionResult:
    db_item = get_scoped(principal, db, Teacher, id)
    return ActionResult.ok(TeacherGet.model_validate(db_item, from_attributes=True))


@service_action
def update_teacher(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(TeacherUpdate, payload)
    require(principal, Teacher, Action.UPDATE, db, resource_id=id)

    db_item = get_scoped(principal, db, Teacher, id, Action.UPDATE)

    changes = entity.model_dump(exclude_unset=True)
    if changes.get("email") and changes["email"] != db_item.user.email:
        ensure_unique(db, User.email, changes["email"], "email", EMAIL_TAKEN, exclude_id=db_item.user_id)

    for key, value in changes.items():
        target = db_item.user if key in USER_FIELDS else db_item
        setattr(target, key, value)

    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Teacher {db_item.id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(TeacherGet.model_validate(db_item, from_attributes=True), message="Teacher updated successfully")


@service_action
def delete_teacher(principal: Principal, id: str, db: Session) -> ActionResult:
    require(principal, Teacher, Action.DELETE, db, resource_id=id)

    db_item = get_scoped(principal, db, Teacher, id, Action.DELETE)

    class_count = db.query(SchoolClass.id).filter(SchoolClass.teacher_id == db_item.id).count()
    if class_count > 0:
        raise BadRequestException(
            detail="Cannot delete a teacher who is assigned to classes. Reassign the classes first."
        )

    # The teacher profile goes with its account
    db.delete(db_item.user)
    db.commit()

    logger.info(f"Teacher {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Teacher deleted successfully")
