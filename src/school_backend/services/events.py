import logging
from typing import Optional
from fastapi import status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from school_backend.api.exceptions import BadRequestException, ForbiddenException, NotFoundException
from school_backend.interface.events import (
    EventCreate,
    EventGet,
    EventInterface,
    EventQuery,
    EventUpdate,
    RegistrationGet,
    RegistrationStatusUpdate,
)
from school_backend.interface.results import ActionResult
from school_backend.model.base import utcnow
from school_backend.model.event import Event, Registration, RegistrationStatus
from school_backend.permissions.core import can_perform, check_permissions, require
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal
from school_backend.services.base import service_action, parse_model
from school_backend.services.crud import apply_update, get_or_404, get_scoped, list_scoped
from school_backend.services.notifications import notify

logger = logging.getLogger(__name__)

ACTIVE_REGISTRATIONS = (RegistrationStatus.PENDING, RegistrationStatus.APPROVED)
ORGANIZER_ONLY = "Only the organizer or an administrator can manage this event"
NO_ACCESS = "You do not have access to this event"


def _active_registrations(db: Session, event_id: str) -> int:
    return (
        db.query(Registration.id)
        .filter(Registration.event_id == event_id, Registration.status.in_(ACTIVE_REGISTRATIONS))
        .count()
    )


def _event_response(principal: Principal, event: Event, db: Session) -> EventGet:
    response = EventGet.model_validate(event, from_attributes=True)

    own = (
        db.query(Registration)
        .filter(Registration.event_id == event.id, Registration.user_id == principal.user_id)
        .first()
    )
    response.registration_count = _active_registrations(db, event.id)
    response.is_registered = own is not None
    response.registration_status = own.status if own is not None else None
    response.can_edit = principal.is_admin or event.organizer_id == principal.user_id
    return response


@service_action
def create_event(principal: Principal, payload, db: Session) -> ActionResult:
    entity = parse_model(EventCreate, payload)
    require(principal, Event, Action.CREATE, db, reason="Only administrators and teachers can create events")

    db_item = Event(**entity.model_dump(), organizer_id=principal.user_id)
    db.add(db_item)
    db.commit()
    db.refresh(db_item)

    logger.info(f"Event {db_item.id} created by {principal.user_id}")
    return ActionResult.ok(
        _event_response(principal, db_item, db),
        message="Event created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def get_events(principal: Principal, params: Optional[EventQuery], db: Session) -> ActionResult:
    items, total = list_scoped(principal, db, parse_model(EventQuery, params), EventInterface)
    return ActionResult.ok(items, total=total)


@service_action
def get_event(principal: Principal, id: str, db: Session) -> ActionResult:
    event = get_or_404(db, Event, id)
    require(principal, Event, Action.GET, db, resource_id=id, reason=NO_ACCESS)
    return ActionResult.ok(_event_response(principal, event, db))


@service_action
def update_event(principal: Principal, id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(EventUpdate, payload)
    get_or_404(db, Event, id)
    require(principal, Event, Action.UPDATE, db, resource_id=id, reason=ORGANIZER_ONLY)

    db_item = get_scoped(principal, db, Event, id, Action.UPDATE)
    changes = apply_update(db_item, entity, nullable=("image", "capacity", "registration_deadline"))

    if db_item.end_time <= db_item.start_time:
        db.rollback()
        reason = "end_time must be after start_time"
        raise BadRequestException(detail={"error": reason, "errors": {"end_time": [reason]}})

    db.commit()
    db.refresh(db_item)

    logger.info(f"Event {id} updated by {principal.user_id}: {sorted(changes)}")
    return ActionResult.ok(_event_response(principal, db_item, db), message="Event updated successfully")


@service_action
def delete_event(principal: Principal, id: str, db: Session) -> ActionResult:
    get_or_404(db, Event, id)
    require(principal, Event, Action.DELETE, db, resource_id=id, reason=ORGANIZER_ONLY)

    db_item = get_scoped(principal, db, Event, id, Action.DELETE)
    db.delete(db_item)
    db.commit()

    logger.info(f"Event {id} deleted by {principal.user_id}")
    return ActionResult.ok({"id": id}, message="Event deleted successfully")


@service_action
def register_for_event(principal: Principal, event_id: str, db: Session) -> ActionResult:
    event = get_or_404(db, Event, event_id)
    require(principal, Event, Action.GET, db, resource_id=event_id, reason=NO_ACCESS)
    require(principal, Registration, Action.CREATE, db, context={"event_id": event_id})

    if event.registration_deadline is not None and utcnow() > event.registration_deadline:
        raise BadRequestException(detail="Registration deadline has passed")

    already = (
        db.query(Registration.id)
        .filter(Registration.event_id == event_id, Registration.user_id == principal.user_id)
        .first()
    )
    if already is not None:
        raise BadRequestException(detail="You are already registered for this event")

    if event.capacity is not None and _active_registrations(db, event_id) >= event.capacity:
        raise BadRequestException(detail="Event is at full capacity")

    db_item = Registration(
        user_id=principal.user_id,
        event_id=event_id,
        status=RegistrationStatus.PENDING if event.requires_approval else RegistrationStatus.APPROVED,
    )
    db.add(db_item)
    if event.organizer_id != principal.user_id:
        notify(db, event.organizer_id, f"{principal.name} registered for {event.title}")

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise BadRequestException(detail="You are already registered for this event")
    db.refresh(db_item)

    logger.info(f"User {principal.user_id} registered for event {event_id} ({db_item.status.value})")
    message = (
        "Registration submitted and awaiting approval"
        if db_item.status == RegistrationStatus.PENDING
        else "Successfully registered for the event"
    )
    return ActionResult.ok(
        RegistrationGet.model_validate(db_item, from_attributes=True),
        message=message,
        status_code=status.HTTP_201_CREATED,
    )


@service_action
def cancel_registration(principal: Principal, event_id: str, db: Session) -> ActionResult:
    event = get_or_404(db, Event, event_id)

    db_item = (
        db.query(Registration)
        .filter(Registration.event_id == event_id, Registration.user_id == principal.user_id)
        .first()
    )
    if db_item is None:
        raise NotFoundException(detail="You are not registered for this event")
    require(principal, Registration, Action.DELETE, db, resource_id=db_item.id)

    db.delete(db_item)
    if event.organizer_id != principal.user_id:
        notify(db, event.organizer_id, f"{principal.name} cancelled their registration for {event.title}")
    db.commit()

    logger.info(f"User {principal.user_id} cancelled registration for event {event_id}")
    return ActionResult.ok({"event_id": event_id}, message="Registration cancelled successfully")


@service_action
def get_event_registrations(principal: Principal, event_id: str, db: Session) -> ActionResult:
    get_or_404(db, Event, event_id)
    if not can_perform(principal, Registration, Action.LIST, db, context={"event_id": event_id}):
        raise ForbiddenException(detail="Only the organizer can view registrations for this event")

    registrations = (
        check_permissions(principal, Registration, Action.LIST, db)
        .options(selectinload(Registration.user))
        .filter(Registration.event_id == event_id)
        .order_by(Registration.created_at)
        .all()
    )
    items = [RegistrationGet.model_validate(r, from_attributes=True) for r in registrations]
    return ActionResult.ok(items, total=len(items))


@service_action
def set_registration_status(principal: Principal, event_id: str, registration_id: str, payload, db: Session) -> ActionResult:
    entity = parse_model(RegistrationStatusUpdate, payload)

    db_item = get_or_404(db, Registration, registration_id)
    if db_item.event_id != event_id:
        raise NotFoundException(detail="Registration not found")
    require(principal, Registration, Action.UPDATE, db, resource_id=registration_id, reason=ORGANIZER_ONLY)

    db_item.status = entity.status
    notify(db, db_item.user_id, f"Your registration for {db_item.event.title} is now {entity.status.value.lower()}")
    db.commit()
    db.refresh(db_item)

    logger.info(f"Registration {registration_id} set to {entity.status.value} by {principal.user_id}")
    return ActionResult.ok(RegistrationGet.model_validate(db_item, from_attributes=True), message="Registration updated successfully")
