import logging
from typing import Optional
from fastapi import status
from sqlalchemy.orm import Session

from school_backend.api.exceptions import BadRequestException
from school_backend.interface.parents import ParentCreate, ParentGet, ParentInterface, ParentQuery
from school_backend.interface.passwords import get_password_hash
from school_backend.interface.results import ActionResult
from school_backend.model.auth import Role, User
from school_backend.model.school import Parent, Student
from school_backend.permissions.core import require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model, commit_or_conflict
from school_backend.services.crud import get_scoped, list_scoped, ensure_unique

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "A user with this email already exists"
CONFLICTS = {"email": EMAIL_TAKEN}


@service_action
def register_parent(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(ParentCreate, payload)
    require(principal, Parent, Action.CREATE, db, reason="You are not authorized to perform this action")

    ensure_unique(db, User.email, entity.email, "email", EMAIL_TAKEN)

    db_item = Parent(
        contact_number=entity.contact_number,
        address=entity.address,
        relationship_to_child=entity.relationship,
        user=User(
            name=entity.name,
            email=entity.email,
            password=get_password_hash(entity.password),
            role=Role.PARENT,
        ),
    )

    db.add(db_item)
    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"Parent {db_item.id} registered by {principal.user_id}")
    return ActionResult.ok(
        ParentGet.model_validate(db_item, from_attributes=True),
        message="Parent registered successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_parents(principal: Principal, params: Optional[ParentQuery], db: Session) -> ActionResult:
    items, total = list_scoped(principal, db, parse_model(ParentQuery, params), ParentInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_parent(principal: Principal, id: str, db: Session) -> ActionResult:
    db_item = get_scoped(principal, db, Parent, id)
    response = ParentGet.model_validate(db_item, from_attributes=True)

    # A teacher only sees the children they teach
    if principal.is_teacher:
        taught = {s.id for s in db_item.children if s.school_class is not None and s.school_class.teacher_id == principal.teacher_id}
        response.children = [child for child in response.children if child.id in taught]

    return ActionResult.ok(response)


@service_action
def delete_parent(principal: Principal, id: str, db: Session) -> ActionResult:
    require(principal, Parent, Action.DELETE, db, resource_id=id)

    db_item = get_scoped(principal, db, Parent, id, Action.DELETE)

    child_count = db.query(Student.id).filter(Student.parent_id == db_item.id).count()
    if child_count > 0:
        raise BadRequestException(
            detail="Cannot delete a parent with registered children. Reassign or remove the students first."
        )

    db.delete(db_item.user)
    db.commit()

    logger.info(f"Parent {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Parent deleted successfully")
