import logging
import math
from typing import Optional
from fastapi import status
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from school_backend.api.exceptions import BadRequestException, ForbiddenException
from school_backend.interface.attendance import (
    AttendanceBulkCreate,
    AttendanceBulkResult,
    AttendanceCreate,
    AttendanceGet,
    AttendanceList,
    AttendanceListResult,
    AttendanceQuery,
    AttendanceStatistics,
    AttendanceSummaryQuery,
    Pagination,
    attendance_search,
)
from school_backend.interface.base import canonical_level
from school_backend.interface.results import ActionResult
from school_backend.model.academics import Attendance, AttendanceStatus
from school_backend.model.auth import Role
from school_backend.model.school import SchoolClass, Student
from school_backend.permissions.core import (
    apply_scope_overrides,
    check_permissions,
    ensure_student_in_scope,
    require,
)
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.permissions.query_builders import ClassScopeQueryBuilder
from school_backend.services.base import service_action, parse_model
from school_backend.services.crud import get_or_404, get_scoped, paginate

logger = logging.getLogger(__name__)

MARKING_ROLES = (Role.ADMIN, Role.TEACHER)
NO_PERMISSION = "You do not have permission to mark attendance"
STUDENT_NOT_IN_CLASS = "Student not found or not in your class"


def statistics_for(query) -> AttendanceStatistics:
    """Per-status counts over an already scoped and filtered attendance query"""
    rows = (
        query.order_by(None)
        .with_entities(Attendance.status, func.count(Attendance.id))
        .group_by(Attendance.status)
        .all()
    )
    counts = {row_status: count for row_status, count in rows}
    total = sum(counts.values())
    present = counts.get(AttendanceStatus.PRESENT, 0)

    return AttendanceStatistics(
        total=total,
        present=present,
        absent=counts.get(AttendanceStatus.ABSENT, 0),
        late=counts.get(AttendanceStatus.LATE, 0),
        excused=counts.get(AttendanceStatus.EXCUSED, 0),
        attendance_rate=round(present / total * 100, 2) if total else 0.0,
    )


def _upsert(db: Session, student_id: str, on_date, attendance_status: AttendanceStatus) -> tuple[Attendance, bool]:
    """Insert or update the single record of ``student_id`` on ``on_date``; returns (record, created)"""
    existing = (
        db.query(Attendance)
        .filter(Attendance.student_id == student_id, Attendance.date == on_date)
        .first()
    )
    if existing is not None:
        existing.status = attendance_status
        db.commit()
        return existing, False

    db_item = Attendance(student_id=student_id, date=on_date, status=attendance_status)
    db.add(db_item)
    try:
        db.commit()
        return db_item, True
    except IntegrityError:
        # Another request inserted the same (student, date) first
        db.rollback()
        existing = (
            db.query(Attendance)
            .filter(Attendance.student_id == student_id, Attendance.date == on_date)
            .one()
        )
        existing.status = attendance_status
        db.commit()
        return existing, False


@service_action
def mark_attendance(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(AttendanceCreate, payload)

    if not principal.has_role(*MARKING_ROLES):
        raise ForbiddenException(detail=NO_PERMISSION)

    get_or_404(db, Student, entity.student_id)
    require(principal, Attendance, Action.CREATE, db, context={"student_id": entity.student_id}, reason=STUDENT_NOT_IN_CLASS)

    db_item, created = _upsert(db, entity.student_id, entity.date, entity.status)
    db.refresh(db_item)

    logger.info(
        f"Attendance {entity.status.value} for student {entity.student_id} on {entity.date} "
        f"{'created' if created else 'updated'} by {principal.user_id}"
    )
    return ActionResult.ok(
        AttendanceGet.model_validate(db_item, from_attributes=True),
        message="Attendance marked successfully" if created else "Attendance updated successfully",
        status_code=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
    )


@service_action
def mark_bulk_attendance(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(AttendanceBulkCreate, payload)

    if not principal.has_role(*MARKING_ROLES):
        raise ForbiddenException(detail=NO_PERMISSION)

    school_class = get_or_404(db, SchoolClass, entity.class_id, "Class")
    if principal.is_teacher and not ClassScopeQueryBuilder.teacher_teaches_class(principal.teacher_id, school_class.id, db):
        raise ForbiddenException(detail="Class not found or not assigned to you")

    roster = {row.id for row in db.query(Student.id).filter(Student.class_id == school_class.id)}
    strangers = sorted(set(entity.records) - roster)
    if strangers:
        reason = "Some students are not enrolled in this class"
        raise BadRequestException(detail={"error": reason, "errors": {"records": [f"{reason}: {', '.join(strangers)}"]}})

    for attempt in range(2):
        existing = {
            record.student_id: record
            for record in db.query(Attendance).filter(
                Attendance.date == entity.date,
                Attendance.student_id.in_(list(entity.records)),
            )
        }
        result = AttendanceBulkResult()
        for student_id, attendance_status in entity.records.items():
            if student_id in existing:
                existing[student_id].status = attendance_status
                result.updated += 1
            else:
                db.add(Attendance(student_id=student_id, date=entity.date, status=attendance_status))
                result.created += 1
        try:
            db.commit()
            break
        except IntegrityError:
            # A concurrent marking won the insert; re-read and apply as updates
            db.rollback()
            if attempt == 1:
                raise

    logger.info(
        f"Bulk attendance for class {school_class.id} on {entity.date} by {principal.user_id}: "
        f"{result.created} created, {result.updated} updated"
    )
    return ActionResult.ok(result, message="Attendance marked successfully for all students")


@service_action
def get_attendance(principal: Principal, params: Optional[AttendanceQuery], db: Session) -> ActionResult:
    params = parse_model(AttendanceQuery, params)
    ensure_student_in_scope(principal, params.student_id, db)
    params = apply_scope_overrides(principal, params)

    query = attendance_search(db, check_permissions(principal, Attendance, Action.LIST, db), params)

    total = query.order_by(None).count()
    statistics = statistics_for(query)

    records = paginate(query.options(selectinload(Attendance.student)).order_by(Attendance.date.desc()), params).all()
    limit = params.limit or total

    result = AttendanceListResult(
        attendance=[AttendanceList.model_validate(record, from_attributes=True) for record in records],
        pagination=Pagination(
            total=total,
            page=params.page or (params.offset() // limit + 1 if limit else 1),
            limit=limit,
            pages=math.ceil(total / limit) if limit else 0,
        ),
        statistics=statistics,
    )
    return ActionResult.ok(result, total=total)


@service_action
def get_attendance_statistics(principal: Principal, params: Optional[AttendanceSummaryQuery], db: Session) -> ActionResult:
    params = parse_model(AttendanceSummaryQuery, params)
    ensure_student_in_scope(principal, params.student_id, db)
    params = apply_scope_overrides(principal, params)

    query = check_permissions(principal, Attendance, Action.LIST, db)

    if params.student_id is not None:
        query = query.filter(Attendance.student_id == params.student_id)

    students = db.query(Student.id)
    if params.class_id is not None:
        students = students.filter(Student.class_id == params.class_id)
    if params.parent_id is not None:
        students = students.filter(Student.parent_id == params.parent_id)
    if params.section is not None:
        students = students.filter(Student.section == params.section)
    if params.grade:
        students = students.filter(Student.class_id.in_(
            db.query(SchoolClass.id).filter(SchoolClass.grade == canonical_level(params.grade))
        ))
    if any(value is not None for value in (params.class_id, params.parent_id, params.section, params.grade)):
        query = query.filter(Attendance.student_id.in_(students))

    if params.start_date is not None:
        query = query.filter(Attendance.date >= params.start_date)
    if params.end_date is not None:
        query = query.filter(Attendance.date <= params.end_date)

    return ActionResult.ok(statistics_for(query))


@service_action
def delete_attendance_record(principal: Principal, id: str, db: Session) -> ActionResult:
    if not principal.is_admin:
        raise ForbiddenException(detail="You do not have permission to delete attendance records")

    db_item = get_scoped(principal, db, Attendance, id, Action.DELETE)
    db.delete(db_item)
    db.commit()

    logger.info(f"Attendance record {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Attendance record deleted successfully")
