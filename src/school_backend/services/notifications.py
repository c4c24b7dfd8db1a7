import logging
from typing import Optional
from sqlalchemy import false
from sqlalchemy.orm import Session

from school_backend.interface.notifications import NotificationGet, NotificationInterface, NotificationQuery
from school_backend.interface.results import ActionResult
from school_backend.model.message import Notification
from school_backend.permissions.core import check_permissions, require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model
from school_backend.services.crud import get_or_404, get_scoped, list_scoped

logger = logging.getLogger(__name__)


def notify(db: Session, user_id: str, message: str) -> Notification:
    """Queue a notification in the caller's unit of work"""
    notification = Notification(user_id=user_id, message=message)
    db.add(notification)
    return notification


@service_action
def get_notifications(principal: Principal, params: Optional[NotificationQuery], db: Session) -> ActionResult:
    items, total = list_scoped(principal, db, parse_model(NotificationQuery, params), NotificationInterface)
    return ActionResult.ok(items, total=total)


@service_action
def mark_notification_read(principal: Principal, id: str, db: Session) -> ActionResult:
    get_or_404(db, Notification, id)
    require(principal, Notification, Action.UPDATE, db, resource_id=id)

    db_item = get_scoped(principal, db, Notification, id, Action.UPDATE)
    db_item.is_read = True
    db.commit()
    db.refresh(db_item)

    return ActionResult.ok(NotificationGet.model_validate(db_item, from_attributes=True))


@service_action
def mark_all_notifications_read(principal: Principal, db: Session) -> ActionResult:
    updated = (
        check_permissions(principal, Notification, Action.UPDATE, db)
        .filter(Notification.is_read == false())
        .update({Notification.is_read: True}, synchronize_session=False)
    )
    db.commit()

    logger.info(f"{updated} notifications marked read for {principal.user_id}")
    return ActionResult.ok({"updated": updated}, message="All notifications marked as read")
