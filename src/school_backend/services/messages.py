import logging
from typing import Optional
from fastapi import status
from sqlalchemy import case, false, func
from sqlalchemy.orm import Session

from school_backend.api.exceptions import ForbiddenException, NotFoundException
from school_backend.interface.messages import BroadcastCreate, BroadcastResult, Conversation, MessageCreate, MessageGet, MessageList, MessageQuery, MessageUpdate, message_search
from school_backend.interface.results import ActionResult
from school_backend.interface.users import UserBrief
from school_backend.model.auth import User
from school_backend.model.message import Message
from school_backend.permissions.core import check_permissions, require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model
from school_backend.services.crud import get_or_404, get_scoped, paginate

logger = logging.getLogger(__name__)


@service_action
def send_message(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(MessageCreate, payload)
    require(principal, Message, Action.CREATE, db)

    get_or_404(db, User, entity.receiver_id, "Receiver")

    db_item = Message(sender_id=principal.user_id, receiver_id=entity.receiver_id, content=entity.content)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)

    logger.info(f"Message {db_item.id} sent from {principal.user_id} to {entity.receiver_id}")
    return ActionResult.ok(
        MessageGet.model_validate(db_item, from_attributes=True),
        message="Message sent successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def broadcast_message(principal: Principal, payload, db: Session) -> ActionResult:
    """Send the same message to every user of one role; administrators only"""
    entity = parse_model(BroadcastCreate, payload)

    if not principal.is_admin:
        raise ForbiddenException(detail="Only administrators can broadcast messages")

    receivers = [row.id for row in db.query(User.id).filter(User.role == entity.target_role)]
    if not receivers:
        raise NotFoundException(detail=f"No {entity.target_role.value.lower()}s found")

    db.add_all([
        Message(sender_id=principal.user_id, receiver_id=receiver_id, content=entity.content)
        for receiver_id in receivers
    ])
    db.commit()

    logger.info(f"Broadcast from {principal.user_id} to {len(receivers)} users with role {entity.target_role.value}")
    return ActionResult.ok(
        BroadcastResult(messages_sent=len(receivers), total_targets=len(receivers), target_role=entity.target_role),
        message="Message broadcast successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_messages(principal: Principal, params: Optional[MessageQuery], db: Session) -> ActionResult:
    params = parse_model(MessageQuery, params)

    query = message_search(db, check_permissions(principal, Message, Action.LIST, db), params, principal.user_id)
    total = query.order_by(None).count()
    messages = paginate(query, params).all()

    items = [MessageList.model_validate(message, from_attributes=True) for message in messages]

    # Opening a conversation marks what was addressed to the reader as read
    unread_ids = [m.id for m in messages if m.receiver_id == principal.user_id and not m.is_read]
    if unread_ids:
        db.query(Message).filter(Message.id.in_(unread_ids)).update({Message.is_read: True}, synchronize_session=False)
        db.commit()

    return ActionResult.ok(items, total=total)


@service_action
def get_conversations(principal: Principal, db: Session) -> ActionResult:
    me = principal.user_id
    base = check_permissions(principal, Message, Action.LIST, db)

    counterpart = case((Message.sender_id == me, Message.receiver_id), else_=Message.sender_id)

    latest = (
        base.with_entities(counterpart.label("user_id"), func.max(Message.created_at).label("last_at"))
        .group_by(counterpart)
        .all()
    )

    unread = dict(
        db.query(Message.sender_id, func.count(Message.id))
        .filter(Message.receiver_id == me, Message.is_read == false())
        .group_by(Message.sender_id)
        .all()
    )

    conversations = []
    for user_id, last_at in latest:
        last_message = (
            base.filter(counterpart == user_id, Message.created_at == last_at)
            .order_by(Message.id.desc())
            .first()
        )
        user = db.get(User, user_id)
        if user is None or last_message is None:
            continue
        conversations.append(Conversation(
            user=UserBrief.model_validate(user, from_attributes=True),
            last_message=MessageList.model_validate(last_message, from_attributes=True),
            unread_count=unread.get(user_id, 0),
        ))

    conversations.sort(key=lambda c: c.last_message.created_at, reverse=True)
    return ActionResult.ok(conversations, total=len(conversations))


@service_action
def update_message(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(MessageUpdate, payload)
    get_or_404(db, Message, id)
    require(principal, Message, Action.UPDATE, db, resource_id=id, reason="Only the sender can edit a message")

    db_item = get_scoped(principal, db, Message, id, Action.UPDATE)
    db_item.content = entity.content
    db.commit()
    db.refresh(db_item)

    logger.info(f"Message {id} edited by {principal.user_id}")
    return ActionResult.ok(MessageGet.model_validate(db_item, from_attributes=True), message="Message updated successfully")


@service_action
def delete_message(principal: Principal, id: str, db: Session) -> ActionResult:
    get_or_404(db, Message, id)
    require(principal, Message, Action.DELETE, db, resource_id=id)

    db_item = get_scoped(principal, db, Message, id, Action.DELETE)
    db.delete(db_item)
    db.commit()

    logger.info(f"Message {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Message deleted successfully")
