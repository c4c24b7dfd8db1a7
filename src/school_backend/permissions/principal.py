from typing import Optional
from pydantic import BaseModel, model_validator

from school_backend.api.exceptions import ForbiddenException, NotFoundException
from school_backend.model.auth import Role


class Principal(BaseModel):
    """The acting user of one request.

    Built fresh from the database for every request, so the role and the
    profile ids (teacher/parent/student) are a snapshot that stays fixed
    while the request runs.
    """

    user_id: str
    role: Role
    name: Optional[str] = None
    is_admin: bool = False

    teacher_id: Optional[str] = None
    parent_id: Optional[str] = None
    student_id: Optional[str] = None

    @model_validator(mode='after')
    def set_is_admin_from_role(self):
        """Admin flag always follows the role"""
        self.is_admin = self.role == Role.ADMIN
        return self

    @property
    def is_teacher(self) -> bool:
        return self.role == Role.TEACHER

    @property
    def is_parent(self) -> bool:
        return self.role == Role.PARENT

    @property
    def is_student(self) -> bool:
        return self.role == Role.STUDENT

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles

    def get_user_id_or_throw(self) -> str:
        if self.user_id is None:
            raise NotFoundException("User ID not found")
        return self.user_id

    def require_teacher_id(self) -> str:
        """Teacher profile id, or Forbidden when the account has none."""
        if self.teacher_id is None:
            raise ForbiddenException(detail="Teacher profile not found")
        return self.teacher_id

    def require_parent_id(self) -> str:
        if self.parent_id is None:
            raise ForbiddenException(detail="Parent profile not found")
        return self.parent_id

    def require_student_id(self) -> str:
        if self.student_id is None:
            raise ForbiddenException(detail="Student profile not found")
        return self.student_id
