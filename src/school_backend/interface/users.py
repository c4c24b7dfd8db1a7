from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, EmailStr, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery, strip_required
from school_backend.model.auth import Role, User


class UserBrief(BaseModel):
    id: str
    name: str
    email: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255, description="Full name")
    email: EmailStr = Field(description="Login email address")
    password: str = Field(min_length=6, max_length=128, description="Initial password")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return strip_required(v)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower()


class UserGet(BaseEntityGet):
    id: str = Field(description="User unique identifier")
    name: str = Field(description="Full name")
    email: str = Field(description="Login email address")
    role: Role = Field(description="Account role")

    model_config = ConfigDict(from_attributes=True)


class UserList(BaseEntityList):
    id: str
    name: str
    email: str
    role: Role

    model_config = ConfigDict(from_attributes=True)


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    role: Optional[Role] = None

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        return strip_required(v)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v):
        return v.lower() if v else v


class PasswordChange(BaseModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=8, max_length=128)


class UserQuery(ListQuery):
    role: Optional[Role] = None
    search: Optional[str] = None


class UserStats(BaseModel):
    users: int = 0
    admins: int = 0
    teachers: int = 0
    parents: int = 0
    students: int = 0
    classes: int = 0
    events: int = 0
    messages: int = 0


def user_search(db: Session, query, params: Optional[UserQuery]):

    if params.role is not None:
        query = query.filter(User.role == params.role)
    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))

    return query.order_by(User.created_at.desc())


class UserInterface(EntityInterface):
    create = UserCreate
    get = UserGet
    list = UserList
    update = UserUpdate
    query = UserQuery
    search = user_search
    endpoint = "users"
    model = User
