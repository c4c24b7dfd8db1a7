from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.attendance import (
    AttendanceBulkCreate,
    AttendanceBulkResult,
    AttendanceCreate,
    AttendanceGet,
    AttendanceListResult,
    AttendanceQuery,
    AttendanceStatistics,
    AttendanceSummaryQuery,
)
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import attendance

attendance_router = APIRouter()


@attendance_router.post("", response_model=AttendanceGet)
def mark_attendance(principal: Annotated[Principal, Depends(get_current_principal)], entity: AttendanceCreate, response: Response, db: Session = Depends(get_db)):
    """Mark one student for one date; 201 when the record is new, 200 when it was updated"""
    return unwrap_result(attendance.mark_attendance(principal, entity, db), response)


@attendance_router.get("", response_model=AttendanceListResult)
def list_attendance(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: AttendanceQuery = Depends()
):
    return unwrap_result(attendance.get_attendance(principal, params, db), response)


@attendance_router.post("/bulk", response_model=AttendanceBulkResult)
def mark_bulk_attendance(principal: Annotated[Principal, Depends(get_current_principal)], entity: AttendanceBulkCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(attendance.mark_bulk_attendance(principal, entity, db), response)


@attendance_router.get("/summary", response_model=AttendanceStatistics)
def attendance_summary(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: AttendanceSummaryQuery = Depends()
):
    return unwrap_result(attendance.get_attendance_statistics(principal, params, db), response)


@attendance_router.delete("/{id}")
def delete_attendance_record(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(attendance.delete_attendance_record(principal, id, db), response)
