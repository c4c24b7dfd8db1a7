from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery, not_null, strip_required
from school_backend.interface.profiles import ClassBrief
from school_backend.interface.users import UserBrief, UserCreate
from school_backend.model.auth import User
from school_backend.model.school import Teacher


class TeacherCreate(UserCreate):
    department: str = Field(min_length=1, max_length=255)
    qualification: str = Field(min_length=1, max_length=255)
    contact_number: Optional[str] = Field(None, max_length=64)
    address: Optional[str] = Field(None, max_length=1024)

    @field_validator('department', 'qualification')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class TeacherUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    department: Optional[str] = Field(None, min_length=1, max_length=255)
    qualification: Optional[str] = Field(None, min_length=1, max_length=255)
    contact_number: Optional[str] = Field(None, max_length=64)
    address: Optional[str] = Field(None, max_length=1024)

    @field_validator('name', 'department', 'qualification')
    @classmethod
    def validate_required(cls, v):
        return strip_required(not_null(v))

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return not_null(v).lower()


class TeacherGet(BaseEntityGet):
    id: str
    user_id: str
    department: str
    qualification: str
    contact_number: Optional[str] = None
    address: Optional[str] = None
    user: Optional[UserBrief] = None
    classes: List[ClassBrief] = []

    model_config = ConfigDict(from_attributes=True)


class TeacherList(BaseEntityList):
    id: str
    user_id: str
    department: str
    qualification: str
    contact_number: Optional[str] = None
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class TeacherQuery(ListQuery):
    department: Optional[str] = None
    search: Optional[str] = None


def teacher_search(db: Session, query, params: Optional[TeacherQuery]):
    query = query.options(selectinload(Teacher.user), selectinload(Teacher.classes))

    if params.department is not None:
        query = query.filter(Teacher.department == params.department)
    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.filter(Teacher.user_id.in_(
            db.query(User.id).filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        ))

    return query.order_by(Teacher.department, Teacher.created_at)


class TeacherInterface(EntityInterface):
    create = TeacherCreate
    get = TeacherGet
    list = TeacherList
    update = TeacherUpdate
    query = TeacherQuery
    search = teacher_search
    endpoint = "teachers"
    model = Teacher
