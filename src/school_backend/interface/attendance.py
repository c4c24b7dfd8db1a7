from datetime import date
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, PagedQuery, strip_required
from school_backend.interface.profiles import StudentBrief
from school_backend.model.academics import Attendance, AttendanceStatus
from school_backend.model.school import Student


class AttendanceCreate(BaseModel):
    date: date
    status: AttendanceStatus
    student_id: str = Field(min_length=1)

    @field_validator('student_id')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class AttendanceBulkCreate(BaseModel):
    """Attendance of one class on one date, keyed by student id"""
    class_id: str = Field(min_length=1)
    date: date
    records: Dict[str, AttendanceStatus] = Field(min_length=1)


class AttendanceGet(BaseEntityGet):
    id: str
    date: date
    status: AttendanceStatus
    student_id: str
    student: Optional[StudentBrief] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceList(BaseEntityList):
    id: str
    date: date
    status: AttendanceStatus
    student_id: str
    student: Optional[StudentBrief] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceQuery(PagedQuery):
    student_id: Optional[str] = None
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    status: Optional[AttendanceStatus] = None

    @model_validator(mode='after')
    def validate_range(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class AttendanceStatistics(BaseModel):
    total: int = 0
    present: int = 0
    absent: int = 0
    late: int = 0
    excused: int = 0
    attendance_rate: float = Field(0.0, description="Share of Present records, in percent")


class Pagination(BaseModel):
    total: int = 0
    page: int = 1
    limit: int = 0
    pages: int = 0


class AttendanceListResult(BaseModel):
    attendance: List[AttendanceList] = []
    pagination: Pagination = Pagination()
    statistics: AttendanceStatistics = AttendanceStatistics()


class AttendanceSummaryQuery(BaseModel):
    student_id: Optional[str] = None
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None


class AttendanceBulkResult(BaseModel):
    created: int = 0
    updated: int = 0


def attendance_search(db: Session, query, params: Optional[AttendanceQuery]):
    if params.student_id is not None:
        query = query.filter(Attendance.student_id == params.student_id)
    if params.class_id is not None:
        query = query.filter(Attendance.student_id.in_(
            db.query(Student.id).filter(Student.class_id == params.class_id)
        ))
    if params.parent_id is not None:
        query = query.filter(Attendance.student_id.in_(
            db.query(Student.id).filter(Student.parent_id == params.parent_id)
        ))
    if params.start_date is not None:
        query = query.filter(Attendance.date >= params.start_date)
    if params.end_date is not None:
        query = query.filter(Attendance.date <= params.end_date)
    if params.status is not None:
        query = query.filter(Attendance.status == params.status)

    return query


class AttendanceInterface(EntityInterface):
    create = AttendanceCreate
    get = AttendanceGet
    list = AttendanceList
    query = AttendanceQuery
    search = attendance_search
    endpoint = "attendance"
    model = Attendance
