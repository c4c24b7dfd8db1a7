from typing import Dict, Optional
from sqlalchemy import or_, select, true
from sqlalchemy.orm import Session, Query

from school_backend.permissions.handlers import PermissionHandler, Action, READ_ACTIONS, WRITE_ACTIONS
from school_backend.permissions.query_builders import (
    ClassScopeQueryBuilder,
    StudentScopeQueryBuilder,
)
from school_backend.permissions.principal import Principal
from school_backend.model.auth import Role
from school_backend.model.event import Event, Registration
from school_backend.model.message import Message


class SchoolClassPermissionHandler(PermissionHandler):
    """Classes: admin manages, teachers see their own, everyone else reads the directory"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if self.check_admin(principal):
            return True

        if action in WRITE_ACTIONS:
            return False

        if principal.role == Role.TEACHER and resource_id is not None:
            return ClassScopeQueryBuilder.teacher_teaches_class(principal.teacher_id, resource_id, db)

        return True

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(self.entity)

        if action in WRITE_ACTIONS:
            raise self.deny()

        if principal.role == Role.TEACHER:
            return db.query(self.entity).filter(
                self.entity.id.in_(ClassScopeQueryBuilder.teacher_class_ids(principal.teacher_id))
            )

        return db.query(self.entity)


class StudentPermissionHandler(PermissionHandler):
    """Students: admin manages; teachers, parents and students read their own slice"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if self.check_admin(principal):
            return True

        if action in WRITE_ACTIONS:
            return False

        if resource_id is not None:
            return StudentScopeQueryBuilder.student_visible(principal, resource_id, db)

        return True

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(self.entity)

        if action in WRITE_ACTIONS:
            raise self.deny()

        return db.query(self.entity).filter(
            self.entity.id.in_(StudentScopeQueryBuilder.visible_student_ids(principal))
        )


class StudentRecordPermissionHandler(PermissionHandler):
    """Base for records owned by a student (grades, attendance).

    Reads follow the student's visibility. Writes are granted per
    subclass through ``ADMIN_WRITES`` and ``TEACHER_WRITES``; a teacher
    may only write records of students in a class they teach.
    """

    ADMIN_WRITES: tuple = ()
    TEACHER_WRITES: tuple = ()

    def _student_id_of(self, db: Session, resource_id: Optional[str], context: Optional[Dict[str, str]]) -> Optional[str]:
        if context and context.get("student_id"):
            return context["student_id"]
        if resource_id is not None:
            return db.execute(
                select(self.entity.student_id).where(self.entity.id == resource_id)
            ).scalar()
        return None

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if action in READ_ACTIONS:
            if self.check_admin(principal):
                return True
            student_id = self._student_id_of(db, resource_id, context)
            if student_id is None:
                return resource_id is None
            return StudentScopeQueryBuilder.student_visible(principal, student_id, db)

        if self.check_admin(principal):
            return action in self.ADMIN_WRITES

        if principal.role == Role.TEACHER and action in self.TEACHER_WRITES:
            student_id = self._student_id_of(db, resource_id, context)
            return ClassScopeQueryBuilder.teacher_teaches_student(principal.teacher_id, student_id, db)

        return False

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if action in READ_ACTIONS:
            if self.check_admin(principal):
                return db.query(self.entity)
            return db.query(self.entity).filter(
                self.entity.student_id.in_(StudentScopeQueryBuilder.visible_student_ids(principal))
            )

        if self.check_admin(principal):
            if action in self.ADMIN_WRITES:
                return db.query(self.entity)
            raise self.deny()

        if principal.role == Role.TEACHER and action in self.TEACHER_WRITES:
            return db.query(self.entity).filter(
                self.entity.student_id.in_(ClassScopeQueryBuilder.teacher_student_ids(principal.teacher_id))
            )

        raise self.deny()


class GradePermissionHandler(StudentRecordPermissionHandler):
    """Grades are written by the teacher of the student's class only"""

    ADMIN_WRITES = ()
    TEACHER_WRITES = (Action.CREATE, Action.UPDATE, Action.DELETE)


class AttendancePermissionHandler(StudentRecordPermissionHandler):
    """Attendance is marked by admins or the teacher of the student's class; only admins delete"""

    ADMIN_WRITES = (Action.CREATE, Action.UPDATE, Action.DELETE)
    TEACHER_WRITES = (Action.CREATE, Action.UPDATE)


class MessagePermissionHandler(PermissionHandler):
    """Messages are visible to their two participants only"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if action == Action.CREATE:
            return True

        if resource_id is None:
            return action == Action.LIST

        message = db.get(Message, resource_id)
        if message is None:
            return False

        if action in READ_ACTIONS:
            return principal.user_id in (message.sender_id, message.receiver_id)

        if action == Action.UPDATE:
            return message.sender_id == principal.user_id

        if action == Action.DELETE:
            return self.check_admin(principal) or message.sender_id == principal.user_id

        return False

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if action in READ_ACTIONS:
            return db.query(self.entity).filter(
                or_(self.entity.sender_id == principal.user_id, self.entity.receiver_id == principal.user_id)
            )

        if action == Action.DELETE and self.check_admin(principal):
            return db.query(self.entity)

        if action in (Action.UPDATE, Action.DELETE):
            return db.query(self.entity).filter(self.entity.sender_id == principal.user_id)

        raise self.deny()


class EventPermissionHandler(PermissionHandler):
    """Events: admins and teachers organize; public events are visible to all"""

    ORGANIZER_ROLES = (Role.ADMIN, Role.TEACHER)

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if action == Action.CREATE:
            return principal.has_role(*self.ORGANIZER_ROLES)

        if resource_id is None:
            return action == Action.LIST

        event = db.get(Event, resource_id)
        if event is None:
            return False

        if self.check_admin(principal) or event.organizer_id == principal.user_id:
            return True

        if action in READ_ACTIONS:
            return bool(event.is_public)

        return False

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(self.entity)

        if action in READ_ACTIONS:
            return db.query(self.entity).filter(
                or_(self.entity.is_public == true(), self.entity.organizer_id == principal.user_id)
            )

        if action in (Action.UPDATE, Action.DELETE):
            return db.query(self.entity).filter(self.entity.organizer_id == principal.user_id)

        raise self.deny()


class RegistrationPermissionHandler(PermissionHandler):
    """Users manage their own registrations; organizers review registrations of their events"""

    def _organized_event_ids(self, principal: Principal):
        return select(Event.id).where(Event.organizer_id == principal.user_id)

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if self.check_admin(principal):
            return True

        if action == Action.CREATE:
            return True

        event_id = (context or {}).get("event_id")
        registration = db.get(Registration, resource_id) if resource_id is not None else None
        if registration is not None:
            event_id = registration.event_id

        is_organizer = False
        if event_id is not None:
            event = db.get(Event, event_id)
            is_organizer = event is not None and event.organizer_id == principal.user_id

        if action in READ_ACTIONS:
            if registration is not None and registration.user_id == principal.user_id:
                return True
            return is_organizer or (registration is None and event_id is None)

        if action == Action.UPDATE:
            return is_organizer

        if action == Action.DELETE:
            return registration is not None and registration.user_id == principal.user_id

        return False

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(self.entity)

        if action in READ_ACTIONS:
            return db.query(self.entity).filter(
                or_(
                    self.entity.user_id == principal.user_id,
                    self.entity.event_id.in_(self._organized_event_ids(principal)),
                )
            )

        if action == Action.UPDATE:
            return db.query(self.entity).filter(self.entity.event_id.in_(self._organized_event_ids(principal)))

        if action == Action.DELETE:
            return db.query(self.entity).filter(self.entity.user_id == principal.user_id)

        raise self.deny()


class TeacherPermissionHandler(PermissionHandler):
    """Teachers form a staff directory readable by every signed-in user"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if self.check_admin(principal):
            return True
        return action in READ_ACTIONS

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal) or action in READ_ACTIONS:
            return db.query(self.entity)
        raise self.deny()


class ParentPermissionHandler(PermissionHandler):
    """Parents: admin manages; teachers see parents of their students, families see themselves"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if self.check_admin(principal):
            return True

        if action in WRITE_ACTIONS:
            return False

        if resource_id is not None:
            return self.record_in_scope(principal, action, db, resource_id)

        return True

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(self.entity)

        if action in WRITE_ACTIONS:
            raise self.deny()

        return db.query(self.entity).filter(
            self.entity.id.in_(StudentScopeQueryBuilder.visible_parent_ids(principal))
        )


class UserPermissionHandler(PermissionHandler):
    """Users: the admin panel; everyone may read their own account"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        # Nobody deletes their own account, admins included
        if action == Action.DELETE and resource_id == principal.user_id:
            return False

        if self.check_admin(principal):
            return True

        return action == Action.GET and resource_id == principal.user_id

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if self.check_admin(principal):
            return db.query(self.entity)

        if action == Action.GET:
            return db.query(self.entity).filter(self.entity.id == principal.user_id)

        raise self.deny()


class NotificationPermissionHandler(PermissionHandler):
    """Notifications belong to their recipient"""

    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        if action == Action.CREATE:
            return self.check_admin(principal)
        if resource_id is None:
            return action == Action.LIST
        return self.record_in_scope(principal, action, db, resource_id)

    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        if action == Action.CREATE:
            raise self.deny()
        return db.query(self.entity).filter(self.entity.user_id == principal.user_id)
