from typing import List, Optional
from pydantic import AliasChoices, ConfigDict, Field
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery
from school_backend.interface.profiles import StudentBrief
from school_backend.interface.users import UserBrief, UserCreate
from school_backend.model.auth import User
from school_backend.model.school import Parent


class ParentCreate(UserCreate):
    contact_number: Optional[str] = Field(None, max_length=64)
    address: Optional[str] = Field(None, max_length=1024)
    relationship: Optional[str] = Field(None, max_length=64, description="Relationship to the children, e.g. 'Mother'")


class ParentGet(BaseEntityGet):
    id: str
    user_id: str
    contact_number: Optional[str] = None
    address: Optional[str] = None
    relationship: Optional[str] = Field(None, validation_alias=AliasChoices("relationship", "relationship_to_child"))
    user: Optional[UserBrief] = None
    children: List[StudentBrief] = []

    model_config = ConfigDict(from_attributes=True)


class ParentList(BaseEntityList):
    id: str
    user_id: str
    contact_number: Optional[str] = None
    relationship: Optional[str] = Field(None, validation_alias=AliasChoices("relationship", "relationship_to_child"))
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class ParentQuery(ListQuery):
    search: Optional[str] = None


def parent_search(db: Session, query, params: Optional[ParentQuery]):
    query = query.options(selectinload(Parent.user), selectinload(Parent.children))

    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.filter(Parent.user_id.in_(
            db.query(User.id).filter(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
        ))

    return query.order_by(Parent.created_at)


class ParentInterface(EntityInterface):
    create = ParentCreate
    get = ParentGet
    list = ParentList
    query = ParentQuery
    search = parent_search
    endpoint = "parents"
    model = Parent
