"""
Form actions.

Every service operation is reachable by name under ``POST /actions/{name}``
with a flat JSON object as body. The response is always HTTP 200 carrying
``{success, data?, message?, errors?}``; failures travel inside the body.
"""

from typing import Annotated, Any, Callable, Dict, Optional
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from school_backend.api.exceptions import NotFoundException
from school_backend.database import get_db
from school_backend.interface.results import ActionResult
from school_backend.permissions.auth import get_optional_principal
from school_backend.permissions.principal import Principal
from school_backend.services import (
    attendance,
    classes,
    event_planning,
    events,
    grades,
    messages,
    notifications,
    parents,
    students,
    teachers,
    users,
)

FormAction = Callable[[Optional[Principal], Dict[str, Any], Session], ActionResult]


def _payload(service) -> FormAction:
    return lambda principal, data, db: service(principal, data, db)


def _by_id(service, key: str = "id") -> FormAction:
    return lambda principal, data, db: service(principal, data.get(key), db)


def _by_id_with_payload(service) -> FormAction:
    def action(principal, data, db):
        payload = {k: v for k, v in data.items() if k != "id"}
        return service(principal, data.get("id"), payload, db)
    return action


def _event_with_payload(service) -> FormAction:
    def action(principal, data, db):
        payload = {k: v for k, v in data.items() if k != "event_id"}
        return service(principal, data.get("event_id"), payload, db)
    return action


def _event_child(service, key: str) -> FormAction:
    def action(principal, data, db):
        payload = {k: v for k, v in data.items() if k not in ("event_id", key)}
        return service(principal, data.get("event_id"), data.get(key), payload, db)
    return action


def _own_account(service) -> FormAction:
    def action(principal, data, db):
        payload = {k: v for k, v in data.items() if k != "id"}
        own_id = principal.user_id if principal is not None else None
        return service(principal, data.get("id") or own_id, payload, db)
    return action


def _bare(service) -> FormAction:
    return lambda principal, data, db: service(principal, db)


FORM_ACTIONS: Dict[str, FormAction] = {
    # Classes
    "addClass": _payload(classes.add_class),
    "getClasses": _payload(classes.get_classes),
    "getClassById": _by_id(classes.get_class_by_id),
    "updateClass": _by_id_with_payload(classes.update_class),
    "deleteClass": _by_id(classes.delete_class),
    # Students
    "registerStudent": _payload(students.register_student),
    "getStudents": _payload(students.get_students),
    "getStudentById": _by_id(students.get_student),
    "updateStudent": _by_id_with_payload(students.update_student),
    "deleteStudent": _by_id(students.delete_student),
    # Teachers
    "registerTeacher": _payload(teachers.register_teacher),
    "getTeachers": _payload(teachers.get_teachers),
    "getTeacherById": _by_id(teachers.get_teacher),
    "updateTeacher": _by_id_with_payload(teachers.update_teacher),
    "deleteTeacher": _by_id(teachers.delete_teacher),
    # Parents
    "registerParent": _payload(parents.register_parent),
    "getParents": _payload(parents.get_parents),
    "getParentById": _by_id(parents.get_parent),
    "deleteParent": _by_id(parents.delete_parent),
    # Grades
    "addGrade": _payload(grades.add_grade),
    "getGrades": _payload(grades.get_grades),
    "getStudentGrades": lambda principal, data, db: grades.get_student_grades(
        principal, data.get("student_id"), data.get("term"), db
    ),
    "updateGrade": _by_id_with_payload(grades.update_grade),
    "deleteGrade": _by_id(grades.delete_grade),
    "getGradeSummary": _by_id(grades.get_grade_summary, "student_id"),
    # Attendance
    "markAttendance": _payload(attendance.mark_attendance),
    "markBulkAttendance": _payload(attendance.mark_bulk_attendance),
    "getAttendance": _payload(attendance.get_attendance),
    "getAttendanceStatistics": _payload(attendance.get_attendance_statistics),
    "deleteAttendanceRecord": _by_id(attendance.delete_attendance_record),
    # Messages
    "sendMessage": _payload(messages.send_message),
    "getMessages": _payload(messages.get_messages),
    "getConversations": _bare(messages.get_conversations),
    "updateMessage": _by_id_with_payload(messages.update_message),
    "deleteMessage": _by_id(messages.delete_message),
    "broadcastMessage": _payload(messages.broadcast_message),
    # Events
    "createEvent": _payload(events.create_event),
    "getEvents": _payload(events.get_events),
    "getEventById": _by_id(events.get_event),
    "updateEvent": _by_id_with_payload(events.update_event),
    "deleteEvent": _by_id(events.delete_event),
    "registerForEvent": _by_id(events.register_for_event, "event_id"),
    "cancelRegistration": _by_id(events.cancel_registration, "event_id"),
    "getEventRegistrations": _by_id(events.get_event_registrations, "event_id"),
    "updateRegistrationStatus": lambda principal, data, db: events.set_registration_status(
        principal, data.get("event_id"), data.get("registration_id"), {"status": data.get("status")}, db
    ),
    "getEventSchedule": _by_id(event_planning.get_event_schedule, "event_id"),
    "addScheduleItem": _event_with_payload(event_planning.add_schedule_item),
    "updateScheduleItem": _event_child(event_planning.update_schedule_item, "item_id"),
    "deleteScheduleItem": lambda principal, data, db: event_planning.delete_schedule_item(
        principal, data.get("event_id"), data.get("item_id"), db
    ),
    "getEventResources": _by_id(event_planning.get_event_resources, "event_id"),
    "addEventResource": _event_with_payload(event_planning.add_event_resource),
    "updateEventResource": _event_child(event_planning.update_event_resource, "resource_id"),
    "deleteEventResource": lambda principal, data, db: event_planning.delete_event_resource(
        principal, data.get("event_id"), data.get("resource_id"), db
    ),
    # Notifications
    "getNotifications": _payload(notifications.get_notifications),
    "markNotificationRead": _by_id(notifications.mark_notification_read),
    "markAllNotificationsRead": _bare(notifications.mark_all_notifications_read),
    # Users
    "getUsers": _payload(users.get_users),
    "getUserById": _by_id(users.get_user),
    "updateUser": _by_id_with_payload(users.update_user),
    "deleteUser": _by_id(users.delete_user),
    "changePassword": _own_account(users.change_password),
    "getStats": _bare(users.get_user_stats),
}

action_router = APIRouter()


@action_router.post("/{name}")
def run_action(
    name: str,
    principal: Annotated[Optional[Principal], Depends(get_optional_principal)],
    data: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db)
) -> dict:
    action = FORM_ACTIONS.get(name)
    if action is None:
        raise NotFoundException(detail=f"Unknown action '{name}'")

    return action(principal, data or {}, db).to_response()
