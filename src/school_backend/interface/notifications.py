from typing import Optional
from pydantic import ConfigDict
from sqlalchemy.orm import Session

from school_backend.interface.base import BaseEntityGet, EntityInterface, ListQuery
from school_backend.model.message import Notification


class NotificationGet(BaseEntityGet):
    id: str
    user_id: str
    message: str
    is_read: bool = False

    model_config = ConfigDict(from_attributes=True)


class NotificationQuery(ListQuery):
    unread: Optional[bool] = None


def notification_search(db: Session, query, params: Optional[NotificationQuery]):
    if params.unread is not None:
        query = query.filter(Notification.is_read == (not params.unread))
    return query.order_by(Notification.created_at.desc())


class NotificationInterface(EntityInterface):
    get = NotificationGet
    list = NotificationGet
    query = NotificationQuery
    search = notification_search
    endpoint = "notifications"
    model = Notification
