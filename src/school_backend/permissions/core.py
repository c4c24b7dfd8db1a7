"""
Permission checking built on the handler registry.

Feature services talk to this module only: it registers one handler per
entity and exposes the checks plus the list-filter overrides that keep
ownership filters pinned to the acting user.
"""

import logging
from typing import Any, Dict, Optional, TypeVar
from pydantic import BaseModel
from sqlalchemy.orm import Session, Query

from school_backend.api.exceptions import ForbiddenException
from school_backend.permissions.handlers import Action, permission_registry
from school_backend.permissions.handlers_impl import (
    SchoolClassPermissionHandler,
    StudentPermissionHandler,
    GradePermissionHandler,
    AttendancePermissionHandler,
    MessagePermissionHandler,
    EventPermissionHandler,
    RegistrationPermissionHandler,
    TeacherPermissionHandler,
    ParentPermissionHandler,
    UserPermissionHandler,
    NotificationPermissionHandler,
)
from school_backend.permissions.principal import Principal
from school_backend.permissions.query_builders import StudentScopeQueryBuilder
from school_backend.model.auth import User, Role
from school_backend.model.school import SchoolClass, Student, Teacher, Parent
from school_backend.model.academics import Grade, Attendance
from school_backend.model.message import Message, Notification
from school_backend.model.event import Event, Registration

logger = logging.getLogger(__name__)

QueryT = TypeVar("QueryT", bound=BaseModel)

NOT_IN_SCOPE = "Student not found or not in your scope"


def initialize_permission_handlers():
    """Initialize and register all permission handlers"""

    # People
    permission_registry.register(User, UserPermissionHandler(User))
    permission_registry.register(Teacher, TeacherPermissionHandler(Teacher))
    permission_registry.register(Parent, ParentPermissionHandler(Parent))
    permission_registry.register(Student, StudentPermissionHandler(Student))

    # Classes and student records
    permission_registry.register(SchoolClass, SchoolClassPermissionHandler(SchoolClass))
    permission_registry.register(Grade, GradePermissionHandler(Grade))
    permission_registry.register(Attendance, AttendancePermissionHandler(Attendance))

    # Communication and events
    permission_registry.register(Message, MessagePermissionHandler(Message))
    permission_registry.register(Notification, NotificationPermissionHandler(Notification))
    permission_registry.register(Event, EventPermissionHandler(Event))
    permission_registry.register(Registration, RegistrationPermissionHandler(Registration))


def check_admin(principal: Principal) -> bool:
    """Check if principal has admin privileges"""
    return principal.is_admin


def check_permissions(principal: Principal, entity: Any, action: Action, db: Session) -> Query:
    """
    Main entry point for permission checking.
    Returns the query narrowed to the principal's scope or raises ForbiddenException.
    """
    return permission_registry.check_permissions(principal, entity, action, db)


def can_perform(
    principal: Principal,
    entity: Any,
    action: Action,
    db: Session,
    resource_id: Optional[str] = None,
    context: Optional[Dict[str, str]] = None,
) -> bool:
    return permission_registry.can_perform_action(principal, entity, action, db, resource_id, context)


def require(
    principal: Principal,
    entity: Any,
    action: Action,
    db: Session,
    resource_id: Optional[str] = None,
    context: Optional[Dict[str, str]] = None,
    reason: Optional[str] = None,
) -> None:
    """Raise ForbiddenException unless the principal may perform ``action``."""
    if not can_perform(principal, entity, action, db, resource_id, context):
        logger.info(
            f"Denied {action.value} on {entity.__tablename__} for user {principal.user_id} ({principal.role.value})"
        )
        raise ForbiddenException(detail=reason or {"entity": entity.__tablename__})


def ensure_student_in_scope(principal: Principal, student_id: Optional[str], db: Session) -> None:
    """A filter pinned to one student outside the principal's scope is a denial, not an empty list."""
    if student_id is None or principal.is_admin:
        return
    if not StudentScopeQueryBuilder.student_visible(principal, student_id, db):
        logger.info(f"Denied student filter {student_id} for user {principal.user_id}")
        raise ForbiddenException(detail=NOT_IN_SCOPE)


def apply_scope_overrides(principal: Principal, params: QueryT) -> QueryT:
    """Replace ownership filters with the principal's own ids.

    Only fields the query model declares are touched; a filter the client
    sent for someone else's parent/teacher is silently pinned back to the
    acting user.
    """
    if principal.is_admin:
        return params

    overrides: Dict[str, Any] = {}
    if principal.role == Role.PARENT:
        overrides["parent_id"] = principal.parent_id
    elif principal.role == Role.TEACHER:
        overrides["teacher_id"] = principal.teacher_id
    elif principal.role == Role.STUDENT:
        overrides["student_id"] = principal.student_id
        overrides["parent_id"] = None
        overrides["class_id"] = None

    fields = type(params).model_fields
    update = {key: value for key, value in overrides.items() if key in fields}
    if not update:
        return params
    return params.model_copy(update=update)


# Initialize handlers on module import
initialize_permission_handlers()
