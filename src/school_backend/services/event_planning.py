"""
Schedule items and resources of an event.

Both follow their event: whoever may see the event may read them, the
organizer and administrators change them.
"""

import logging
from typing import Any
from fastapi import status
from sqlalchemy.orm import Session

from school_backend.api.exceptions import BadRequestException, NotFoundException
from school_backend.interface.events import (
    EventResourceCreate,
    EventResourceGet,
    EventResourceUpdate,
    ScheduleItemCreate,
    ScheduleItemGet,
    ScheduleItemUpdate,
)
from school_backend.interface.results import ActionResult
from school_backend.model.event import Event, EventResource, ScheduleItem
from school_backend.permissions.core import require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model
from school_backend.services.crud import apply_update, get_or_404
from school_backend.services.events import NO_ACCESS, ORGANIZER_ONLY

logger = logging.getLogger(__name__)


def _readable_event(principal: Principal, event_id: str, db: Session) -> Event:
    event = get_or_404(db, Event, event_id)
    require(principal, Event, Action.GET, db, resource_id=event_id, reason=NO_ACCESS)
    return event


def _editable_event(principal: Principal, event_id: str, db: Session) -> Event:
    event = get_or_404(db, Event, event_id)
    require(principal, Event, Action.UPDATE, db, resource_id=event_id, reason=ORGANIZER_ONLY)
    return event


def _event_child(db: Session, db_type: Any, event_id: str, id: str, label: str):
    """A schedule item or resource addressed through an event it does not belong to is not found"""
    item = db.get(db_type, id) if id else None
    if item is None or item.event_id != event_id:
        raise NotFoundException(detail=f"{label} not found")
    return item


# Schedule

@service_action
def get_event_schedule(principal: Principal, event_id: str, db: Session) -> ActionResult:
    _readable_event(principal, event_id, db)

    items = (
        db.query(ScheduleItem)
        .filter(ScheduleItem.event_id == event_id)
        .order_by(ScheduleItem.start_time)
        .all()
    )
    return ActionResult.ok([ScheduleItemGet.model_validate(item, from_attributes=True) for item in items], total=len(items))


@service_action
def add_schedule_item(principal: Principal, event_id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(ScheduleItemCreate, payload)
    _editable_event(principal, event_id, db)

    db_item = ScheduleItem(**entity.model_dump(), event_id=event_id)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)

    logger.info(f"Schedule item {db_item.id} added to event {event_id} by {principal.user_id}")
    return ActionResult.ok(
        ScheduleItemGet.model_validate(db_item, from_attributes=True),
        message="Schedule item added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def update_schedule_item(principal: Principal, event_id: str, item_id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(ScheduleItemUpdate, payload)
    _editable_event(principal, event_id, db)

    db_item = _event_child(db, ScheduleItem, event_id, item_id, "Schedule item")
    changes = apply_update(db_item, entity)

    if db_item.end_time <= db_item.start_time:
        db.rollback()
        reason = "end_time must be after start_time"
        raise BadRequestException(detail={"error": reason, "errors": {"end_time": [reason]}})

    db.commit()
    db.refresh(db_item)

    logger.info(f"Schedule item {item_id} of event {event_id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(ScheduleItemGet.model_validate(db_item, from_attributes=True), message="Schedule item updated successfully")


@service_action
def delete_schedule_item(principal: Principal, event_id: str, item_id: str, db: Session) -> ActionResult:
    _editable_event(principal, event_id, db)

    db_item = _event_child(db, ScheduleItem, event_id, item_id, "Schedule item")
    db.delete(db_item)
    db.commit()

    logger.info(f"Schedule item {item_id} of event {event_id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": item_id}, message="Schedule item deleted successfully")


# Resources

@service_action
def get_event_resources(principal: Principal, event_id: str, db: Session) -> ActionResult:
    _readable_event(principal, event_id, db)

    resources = (
        db.query(EventResource)
        .filter(EventResource.event_id == event_id)
        .order_by(EventResource.name)
        .all()
    )
    return ActionResult.ok([EventResourceGet.model_validate(r, from_attributes=True) for r in resources], total=len(resources))


@service_action
def add_event_resource(principal: Principal, event_id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(EventResourceCreate, payload)
    _editable_event(principal, event_id, db)

    db_item = EventResource(**entity.model_dump(), event_id=event_id)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)

    logger.info(f"Resource {db_item.id} added to event {event_id} by {principal.user_id}")
    return ActionResult.ok(
        EventResourceGet.model_validate(db_item, from_attributes=True),
        message="Resource added successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def update_event_resource(principal: Principal, event_id: str, resource_id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(EventResourceUpdate, payload)
    _editable_event(principal, event_id, db)

    db_item = _event_child(db, EventResource, event_id, resource_id, "Resource")
    changes = apply_update(db_item, entity)
    db.commit()
    db.refresh(db_item)

    logger.info(f"Resource {resource_id} of event {event_id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(EventResourceGet.model_validate(db_item, from_attributes=True), message="Resource updated successfully")


@service_action
def delete_event_resource(principal: Principal, event_id: str, resource_id: str, db: Session) -> ActionResult:
    _editable_event(principal, event_id, db)

    db_item = _event_child(db, EventResource, event_id, resource_id, "Resource")
    db.delete(db_item)
    db.commit()

    logger.info(f"Resource {resource_id} of event {event_id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": resource_id}, message="Resource deleted successfully")
