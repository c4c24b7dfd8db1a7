from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.messages import BroadcastCreate, BroadcastResult, Conversation, MessageCreate, MessageGet, MessageList, MessageQuery, MessageUpdate
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import messages

message_router = APIRouter()


@message_router.post("", response_model=MessageGet)
def send_message(principal: Annotated[Principal, Depends(get_current_principal)], entity: MessageCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(messages.send_message(principal, entity, db), response)


@message_router.post("/broadcast", response_model=BroadcastResult)
def broadcast_message(principal: Annotated[Principal, Depends(get_current_principal)], entity: BroadcastCreate, response: Response, db: Session = Depends(get_db)):
    """Message every teacher, student or parent at once; administrators only"""
    return unwrap_result(messages.broadcast_message(principal, entity, db), response)


@message_router.get("", response_model=list[MessageList])
def list_messages(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: MessageQuery = Depends()
):
    """Messages the current user sent or received, newest first"""
    return unwrap_result(messages.get_messages(principal, params, db), response)


@message_router.get("/conversations", response_model=list[Conversation])
def list_conversations(principal: Annotated[Principal, Depends(get_current_principal)], response: Response, db: Session = Depends(get_db)):
    return unwrap_result(messages.get_conversations(principal, db), response)


@message_router.patch("/{id}", response_model=MessageGet)
def update_message(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: MessageUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(messages.update_message(principal, id, entity, db), response)


@message_router.delete("/{id}")
def delete_message(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(messages.delete_message(principal, id, db), response)
