from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.notifications import NotificationGet, NotificationQuery
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import notifications

notification_router = APIRouter()


@notification_router.get("", response_model=list[NotificationGet])
def list_notifications(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: NotificationQuery = Depends()
):
    return unwrap_result(notifications.get_notifications(principal, params, db), response)


@notification_router.post("/read-all")
def mark_all_read(principal: Annotated[Principal, Depends(get_current_principal)], response: Response, db: Session = Depends(get_db)):
    return unwrap_result(notifications.mark_all_notifications_read(principal, db), response)


@notification_router.post("/{id}/read", response_model=NotificationGet)
def mark_read(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(notifications.mark_notification_read(principal, id, db), response)
