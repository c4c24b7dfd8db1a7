from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import or_, and_
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, ListQuery, strip_required
from school_backend.interface.users import UserBrief
from school_backend.model.auth import Role
from school_backend.model.message import Message

BROADCAST_ROLES = (Role.TEACHER, Role.STUDENT, Role.PARENT)


class MessageCreate(BaseModel):
    # sender_id is always the current user; set in the service
    receiver_id: str = Field(min_length=1)
    content: str = Field(min_length=1, max_length=16384)

    @field_validator('receiver_id', 'content')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class MessageUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=16384)

    @field_validator('content')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class BroadcastCreate(BaseModel):
    content: str = Field(min_length=1, max_length=16384)
    target_role: Role

    @field_validator('content')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('target_role')
    @classmethod
    def validate_target(cls, v):
        if v not in BROADCAST_ROLES:
            raise ValueError("Invalid target role")
        return v


class BroadcastResult(BaseModel):
    messages_sent: int = 0
    total_targets: int = 0
    target_role: Role


class MessageGet(BaseEntityGet):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    sender: Optional[UserBrief] = None
    receiver: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class MessageList(BaseEntityList):
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool = False
    sender: Optional[UserBrief] = None
    receiver: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class MessageQuery(ListQuery):
    conversation_with: Optional[str] = Field(None, description="Only messages exchanged with this user")
    unread: Optional[bool] = None
    limit: Optional[int] = Field(50, ge=1, le=500)


class Conversation(BaseModel):
    user: UserBrief
    last_message: MessageList
    unread_count: int = 0


def message_search(db: Session, query, params: Optional[MessageQuery], user_id: str):
    query = query.options(selectinload(Message.sender), selectinload(Message.receiver))

    if params.conversation_with is not None:
        query = query.filter(or_(
            and_(Message.sender_id == user_id, Message.receiver_id == params.conversation_with),
            and_(Message.sender_id == params.conversation_with, Message.receiver_id == user_id),
        ))
    if params.unread is not None:
        query = query.filter(Message.receiver_id == user_id, Message.is_read == (not params.unread))

    return query.order_by(Message.created_at.desc())


class MessageInterface(EntityInterface):
    create = MessageCreate
    get = MessageGet
    list = MessageList
    update = MessageUpdate
    query = MessageQuery
    search = message_search
    endpoint = "messages"
    model = Message
