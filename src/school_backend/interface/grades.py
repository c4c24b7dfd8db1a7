from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery, strip_required
from school_backend.interface.profiles import StudentBrief
from school_backend.model.academics import Grade
from school_backend.model.school import Student
from school_backend.settings import settings


def grade_label(score: float) -> str:
    """Letter grade for ``score`` according to the configured scale"""
    for label, threshold in settings.GRADE_SCALE:
        if score >= threshold:
            return label
    return settings.GRADE_FAIL_LABEL


class GradeCreate(BaseModel):
    student_id: str = Field(min_length=1)
    subject: str = Field(min_length=1, max_length=255)
    term: str = Field(min_length=1, max_length=64)
    score: float = Field(ge=0, le=100)
    remarks: Optional[str] = Field(None, max_length=2048)

    @field_validator('student_id', 'subject', 'term')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class GradeUpdate(BaseModel):
    subject: Optional[str] = Field(None, min_length=1, max_length=255)
    term: Optional[str] = Field(None, min_length=1, max_length=64)
    score: Optional[float] = Field(None, ge=0, le=100)
    remarks: Optional[str] = Field(None, max_length=2048)

    @field_validator('subject', 'term')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class GradeGet(BaseEntityGet):
    id: str
    student_id: str
    teacher_id: Optional[str] = None
    subject: str
    term: str
    score: float
    grade: str
    remarks: Optional[str] = None
    student: Optional[StudentBrief] = None

    model_config = ConfigDict(from_attributes=True)


class GradeList(BaseEntityList):
    id: str
    student_id: str
    teacher_id: Optional[str] = None
    subject: str
    term: str
    score: float
    grade: str
    remarks: Optional[str] = None
    student: Optional[StudentBrief] = None

    model_config = ConfigDict(from_attributes=True)


class GradeQuery(ListQuery):
    student_id: Optional[str] = None
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    subject: Optional[str] = None
    term: Optional[str] = None


def grade_search(db: Session, query, params: Optional[GradeQuery]):
    query = query.options(selectinload(Grade.student))

    if params.student_id is not None:
        query = query.filter(Grade.student_id == params.student_id)
    if params.class_id is not None:
        query = query.filter(Grade.student_id.in_(
            db.query(Student.id).filter(Student.class_id == params.class_id)
        ))
    if params.parent_id is not None:
        query = query.filter(Grade.student_id.in_(
            db.query(Student.id).filter(Student.parent_id == params.parent_id)
        ))
    if params.subject is not None:
        query = query.filter(Grade.subject == params.subject)
    if params.term is not None:
        query = query.filter(Grade.term == params.term)

    return query.order_by(Grade.created_at.desc())


class GradeInterface(EntityInterface):
    create = GradeCreate
    get = GradeGet
    list = GradeList
    update = GradeUpdate
    query = GradeQuery
    search = grade_search
    endpoint = "grades"
    model = Grade


GRADE_POINTS = {
    "A": 4.0, "A-": 3.7,
    "B+": 3.3, "B": 3.0, "B-": 2.7,
    "C+": 2.3, "C": 2.0, "C-": 1.7,
    "D+": 1.3, "D": 1.0,
    "F": 0.0,
}


class GradeSummary(BaseModel):
    student_id: str
    count: int
    average_score: float
    highest_score: float
    highest_subject: Optional[str] = None
    gpa: Optional[float] = None


def summarize_grades(student_id: str, grades: list[Grade]) -> GradeSummary:
    """Average, best subject and GPA; letters outside GRADE_POINTS count as zero points"""
    if not grades:
        return GradeSummary(student_id=student_id, count=0, average_score=0.0, highest_score=0.0)

    best = grades[0]
    for grade in grades[1:]:
        if grade.score > best.score:
            best = grade

    points = [GRADE_POINTS.get(grade.grade, 0.0) for grade in grades]
    return GradeSummary(
        student_id=student_id,
        count=len(grades),
        average_score=round(sum(grade.score for grade in grades) / len(grades), 1),
        highest_score=best.score,
        highest_subject=best.subject,
        gpa=round(sum(points) / len(points), 2),
    )
