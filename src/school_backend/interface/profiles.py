"""Compact representations embedded in other entities' responses"""

from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from school_backend.interface.users import UserBrief


class TeacherBrief(BaseModel):
    id: str
    department: str
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ParentBrief(BaseModel):
    id: str
    contact_number: Optional[str] = None
    relationship: Optional[str] = Field(None, validation_alias=AliasChoices("relationship", "relationship_to_child"))
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ClassBrief(BaseModel):
    id: str
    name: str
    grade: str
    section: str
    teacher_id: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class StudentBrief(BaseModel):
    id: str
    first_name: str
    last_name: str
    admission_number: str
    class_id: str
    parent_id: str

    model_config = ConfigDict(from_attributes=True)
