from typing import Optional
from pydantic import BaseModel, Field

from school_backend.interface.users import UserGet


class LoginRequest(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class CurrentUser(UserGet):
    """The signed-in user with the profile ids the permission checks resolve"""
    teacher_id: Optional[str] = None
    parent_id: Optional[str] = None
    student_id: Optional[str] = None
