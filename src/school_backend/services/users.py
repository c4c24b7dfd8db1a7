import logging
from typing import Optional
from sqlalchemy import func
from sqlalchemy.orm import Session

from school_backend.api.exceptions import BadRequestException, ForbiddenException
from school_backend.interface.passwords import get_password_hash, verify_password
from school_backend.interface.results import ActionResult
from school_backend.interface.users import PasswordChange, UserGet, UserInterface, UserQuery, UserStats, UserUpdate
from school_backend.model.auth import Role, User
from school_backend.model.event import Event
from school_backend.model.message import Message
from school_backend.model.school import SchoolClass, Student
from school_backend.permissions.core import require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model, commit_or_conflict
from school_backend.services.crud import apply_update, ensure_unique, get_or_404, get_scoped, list_scoped

logger = logging.getLogger(__name__)

EMAIL_TAKEN = "A user with this email already exists"
CONFLICTS = {"email": EMAIL_TAKEN}


@service_action
def get_users(principal: Principal, params: Optional[UserQuery], db: Session) -> ActionResult:
    items, total = list_scoped(principal, db, parse_model(UserQuery, params), UserInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_user(principal: Principal, id: str, db: Session) -> ActionResult:
    db_item = get_scoped(principal, db, User, id)
    return ActionResult.ok(UserGet.model_validate(db_item, from_attributes=True))


@service_action
def update_user(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(UserUpdate, payload)
    get_or_404(db, User, id)
    require(principal, User, Action.UPDATE, db, resource_id=id)

    db_item = get_scoped(principal, db, User, id, Action.UPDATE)

    if entity.role is not None and entity.role != db_item.role and id == principal.user_id:
        raise BadRequestException(detail="You cannot change your own role")

    if entity.email and entity.email != db_item.email:
        ensure_unique(db, User.email, entity.email, "email", EMAIL_TAKEN, exclude_id=db_item.id)

    changes = apply_update(db_item, entity)
    commit_or_conflict(db, CONFLICTS)
    db.refresh(db_item)

    logger.info(f"User {id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(UserGet.model_validate(db_item, from_attributes=True), message="User updated successfully")


@service_action
def change_password(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(PasswordChange, payload)
    db_item = get_or_404(db, User, id)

    if db_item.id != principal.user_id:
        raise ForbiddenException(detail="You can only change your own password")

    if not verify_password(entity.current_password, db_item.password):
        reason = "Current password is incorrect"
        raise BadRequestException(detail={"error": reason, "errors": {"current_password": [reason]}})

    db_item.password = get_password_hash(entity.new_password)
    db.commit()

    logger.info(f"User {id} changed their password")
    return ActionResult.ok({"id": id}, message="Password updated successfully")


@service_action
def delete_user(principal: Principal, id: str, db: Session) -> ActionResult:
    get_or_404(db, User, id)
    require(principal, User, Action.DELETE, db, resource_id=id, reason="You cannot delete this account")

    db_item = get_scoped(principal, db, User, id, Action.DELETE)

    if db_item.parent is not None:
        child_count = db.query(Student.id).filter(Student.parent_id == db_item.parent.id).count()
        if child_count > 0:
            raise BadRequestException(
                detail="Cannot delete a parent with registered children. Reassign or remove the students first."
            )

    if db_item.teacher is not None:
        class_count = db.query(SchoolClass.id).filter(SchoolClass.teacher_id == db_item.teacher.id).count()
        if class_count > 0:
            raise BadRequestException(
                detail="Cannot delete a teacher who is assigned to classes. Reassign the classes first."
            )

    db.delete(db_item)
    db.commit()

    logger.info(f"User {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="User deleted successfully")


@service_action
def get_user_stats(principal: Principal, db: Session) -> ActionResult:
    if not principal.is_admin:
        raise ForbiddenException(detail="Only administrators can view statistics")

    by_role = dict(db.query(User.role, func.count(User.id)).group_by(User.role).all())

    stats = UserStats(
        users=sum(by_role.values()),
        admins=by_role.get(Role.ADMIN, 0),
        teachers=by_role.get(Role.TEACHER, 0),
        parents=by_role.get(Role.PARENT, 0),
        students=db.query(Student.id).count(),
        classes=db.query(SchoolClass.id).count(),
        events=db.query(Event.id).count(),
        messages=db.query(Message.id).count(),
    )
    return ActionResult.ok(stats)


def create_admin_user(db: Session, email: str, password: str, name: str = "Administrator") -> User:
    """Create an administrator account unless the email is taken; returns the account"""
    email = email.strip().lower()

    user = db.query(User).filter(User.email == email).first()
    if user is not None:
        logger.info(f"Account {email} already exists, not creating an administrator")
        return user

    user = User(name=name, email=email, password=get_password_hash(password), role=Role.ADMIN)
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info(f"Administrator {email} created")
    return user
