from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery, strip_required, canonical_level
from school_backend.interface.profiles import StudentBrief, TeacherBrief
from school_backend.model.school import SchoolClass, Teacher


class ClassCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255, description="Unique class name")
    grade: str = Field(min_length=1, max_length=64, description="Class level, e.g. '10' or 'O LEVEL'")
    section: str = Field(min_length=1, max_length=64)
    teacher_id: Optional[str] = Field(None, description="Assigned teacher, may be left empty")

    @field_validator('name', 'section')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('grade')
    @classmethod
    def validate_grade(cls, v):
        return canonical_level(v)

    @field_validator('teacher_id')
    @classmethod
    def empty_teacher_is_none(cls, v):
        return v or None


class ClassUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    grade: Optional[str] = Field(None, min_length=1, max_length=64)
    section: Optional[str] = Field(None, min_length=1, max_length=64)
    teacher_id: Optional[str] = None

    @field_validator('name', 'section')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('grade')
    @classmethod
    def validate_grade(cls, v):
        return canonical_level(v)

    @field_validator('teacher_id')
    @classmethod
    def empty_teacher_is_none(cls, v):
        return v or None


class ClassGet(BaseEntityGet):
    id: str
    name: str
    grade: str
    section: str
    teacher_id: Optional[str] = None
    teacher: Optional[TeacherBrief] = None
    students: List[StudentBrief] = []

    model_config = ConfigDict(from_attributes=True)


class ClassList(BaseEntityList):
    id: str
    name: str
    grade: str
    section: str
    teacher_id: Optional[str] = None
    teacher: Optional[TeacherBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ClassQuery(ListQuery):
    name: Optional[str] = None
    grade: Optional[str] = None
    section: Optional[str] = None
    teacher_id: Optional[str] = None


def class_search(db: Session, query, params: Optional[ClassQuery]):
    query = query.options(selectinload(SchoolClass.teacher).selectinload(Teacher.user))

    if params.name is not None:
        query = query.filter(SchoolClass.name == params.name)
    if params.grade:
        query = query.filter(SchoolClass.grade == canonical_level(params.grade))
    if params.section is not None:
        query = query.filter(SchoolClass.section == params.section)
    if params.teacher_id is not None:
        query = query.filter(SchoolClass.teacher_id == params.teacher_id)

    return query.order_by(SchoolClass.grade, SchoolClass.name)


class ClassInterface(EntityInterface):
    create = ClassCreate
    get = ClassGet
    list = ClassList
    update = ClassUpdate
    query = ClassQuery
    search = class_search
    endpoint = "classes"
    model = SchoolClass
