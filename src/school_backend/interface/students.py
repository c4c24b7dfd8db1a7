from datetime import date
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator, model_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery, strip_required, canonical_level
from school_backend.interface.profiles import ClassBrief, ParentBrief
from school_backend.interface.users import UserBrief
from school_backend.model.school import SchoolClass, Student, Parent


class StudentCreate(BaseModel):
    first_name: str = Field(min_length=1, max_length=255)
    last_name: str = Field(min_length=1, max_length=255)
    admission_number: str = Field(min_length=1, max_length=64, description="Unique admission number")
    date_of_birth: date
    gender: str = Field(min_length=1, max_length=32)
    enrollment_date: date
    section: str = Field(min_length=1, max_length=64)
    address: Optional[str] = Field(None, max_length=1024)
    class_id: str = Field(min_length=1)
    parent_id: str = Field(min_length=1)

    # Optional login account, created together with the student record
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator('first_name', 'last_name', 'admission_number', 'gender', 'section')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v

    @model_validator(mode='after')
    def password_with_email(self):
        if self.email is not None and not self.password:
            raise ValueError("A password is required when an email is given")
        return self


class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=255)
    last_name: Optional[str] = Field(None, min_length=1, max_length=255)
    admission_number: Optional[str] = Field(None, min_length=1, max_length=64)
    date_of_birth: Optional[date] = None
    gender: Optional[str] = Field(None, min_length=1, max_length=32)
    enrollment_date: Optional[date] = None
    section: Optional[str] = Field(None, min_length=1, max_length=64)
    address: Optional[str] = Field(None, max_length=1024)
    class_id: Optional[str] = None
    parent_id: Optional[str] = None

    @field_validator('first_name', 'last_name', 'admission_number', 'gender', 'section', 'class_id', 'parent_id')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class StudentGet(BaseEntityGet):
    id: str
    first_name: str
    last_name: str
    admission_number: str
    date_of_birth: date
    gender: str
    enrollment_date: date
    section: str
    address: Optional[str] = None
    grade: Optional[str] = Field(None, description="Level of the student's class")
    class_id: str
    parent_id: str
    user_id: Optional[str] = None
    school_class: Optional[ClassBrief] = None
    parent: Optional[ParentBrief] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class StudentList(BaseEntityList):
    id: str
    first_name: str
    last_name: str
    admission_number: str
    gender: str
    section: str
    grade: Optional[str] = None
    class_id: str
    parent_id: str
    user_id: Optional[str] = None
    school_class: Optional[ClassBrief] = None

    model_config = ConfigDict(from_attributes=True)


class StudentQuery(ListQuery):
    grade: Optional[str] = None
    section: Optional[str] = None
    class_id: Optional[str] = None
    parent_id: Optional[str] = None
    admission_number: Optional[str] = None
    search: Optional[str] = None


def student_search(db: Session, query, params: Optional[StudentQuery]):
    query = query.options(
        selectinload(Student.school_class),
        selectinload(Student.parent).selectinload(Parent.user),
        selectinload(Student.user),
    )

    if params.grade:
        query = query.filter(Student.class_id.in_(
            db.query(SchoolClass.id).filter(SchoolClass.grade == canonical_level(params.grade))
        ))
    if params.section is not None:
        query = query.filter(Student.section == params.section)
    if params.class_id is not None:
        query = query.filter(Student.class_id == params.class_id)
    if params.parent_id is not None:
        query = query.filter(Student.parent_id == params.parent_id)
    if params.admission_number is not None:
        query = query.filter(Student.admission_number == params.admission_number)
    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.filter(or_(
            Student.first_name.ilike(pattern),
            Student.last_name.ilike(pattern),
            Student.admission_number.ilike(pattern),
        ))

    return query.order_by(Student.last_name, Student.first_name)


class StudentInterface(EntityInterface):
    create = StudentCreate
    get = StudentGet
    list = StudentList
    update = StudentUpdate
    query = StudentQuery
    search = student_search
    endpoint = "students"
    model = Student
