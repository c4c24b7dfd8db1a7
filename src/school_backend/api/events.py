from typing import Annotated
from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from school_backend.api.utils import unwrap_result
from school_backend.database import get_db
from school_backend.interface.events import (
    EventCreate,
    EventGet,
    EventList,
    EventQuery,
    EventResourceCreate,
    EventResourceGet,
    EventResourceUpdate,
    EventUpdate,
    RegistrationGet,
    RegistrationStatusUpdate,
    ScheduleItemCreate,
    ScheduleItemGet,
    ScheduleItemUpdate,
)
from school_backend.permissions.auth import get_current_principal
from school_backend.permissions.principal import Principal
from school_backend.services import event_planning, events

event_router = APIRouter()


@event_router.get("", response_model=list[EventList])
def list_events(
    principal: Annotated[Principal, Depends(get_current_principal)],
    response: Response,
    db: Session = Depends(get_db),
    params: EventQuery = Depends()
):
    """Public events plus the private events the current user organizes"""
    return unwrap_result(events.get_events(principal, params, db), response)


@event_router.post("", response_model=EventGet)
def create_event(principal: Annotated[Principal, Depends(get_current_principal)], entity: EventCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.create_event(principal, entity, db), response)


@event_router.get("/{id}", response_model=EventGet)
def get_event(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.get_event(principal, id, db), response)


@event_router.put("/{id}", response_model=EventGet)
def update_event(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: EventUpdate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.update_event(principal, id, entity, db), response)


@event_router.delete("/{id}")
def delete_event(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.delete_event(principal, id, db), response)


@event_router.post("/{id}/register", response_model=RegistrationGet)
def register_for_event(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.register_for_event(principal, id, db), response)


@event_router.delete("/{id}/register")
def cancel_registration(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.cancel_registration(principal, id, db), response)


@event_router.get("/{id}/registrations", response_model=list[RegistrationGet])
def list_registrations(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(events.get_event_registrations(principal, id, db), response)


@event_router.patch("/{id}/registrations/{registration_id}", response_model=RegistrationGet)
def set_registration_status(
    principal: Annotated[Principal, Depends(get_current_principal)],
    id: str,
    registration_id: str,
    entity: RegistrationStatusUpdate,
    response: Response,
    db: Session = Depends(get_db)
):
    """Approve or reject a registration; organizer and administrators only"""
    return unwrap_result(events.set_registration_status(principal, id, registration_id, entity, db), response)


@event_router.get("/{id}/schedule", response_model=list[ScheduleItemGet])
def list_schedule(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(event_planning.get_event_schedule(principal, id, db), response)


@event_router.post("/{id}/schedule", response_model=ScheduleItemGet)
def add_schedule_item(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: ScheduleItemCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(event_planning.add_schedule_item(principal, id, entity, db), response)


@event_router.patch("/{id}/schedule/{item_id}", response_model=ScheduleItemGet)
def update_schedule_item(
    principal: Annotated[Principal, Depends(get_current_principal)],
    id: str,
    item_id: str,
    entity: ScheduleItemUpdate,
    response: Response,
    db: Session = Depends(get_db)
):
    return unwrap_result(event_planning.update_schedule_item(principal, id, item_id, entity, db), response)


@event_router.delete("/{id}/schedule/{item_id}")
def delete_schedule_item(principal: Annotated[Principal, Depends(get_current_principal)], id: str, item_id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(event_planning.delete_schedule_item(principal, id, item_id, db), response)


@event_router.get("/{id}/resources", response_model=list[EventResourceGet])
def list_resources(principal: Annotated[Principal, Depends(get_current_principal)], id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(event_planning.get_event_resources(principal, id, db), response)


@event_router.post("/{id}/resources", response_model=EventResourceGet)
def add_resource(principal: Annotated[Principal, Depends(get_current_principal)], id: str, entity: EventResourceCreate, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(event_planning.add_event_resource(principal, id, entity, db), response)


@event_router.patch("/{id}/resources/{resource_id}", response_model=EventResourceGet)
def update_resource(
    principal: Annotated[Principal, Depends(get_current_principal)],
    id: str,
    resource_id: str,
    entity: EventResourceUpdate,
    response: Response,
    db: Session = Depends(get_db)
):
    return unwrap_result(event_planning.update_event_resource(principal, id, resource_id, entity, db), response)


@event_router.delete("/{id}/resources/{resource_id}")
def delete_resource(principal: Annotated[Principal, Depends(get_current_principal)], id: str, resource_id: str, response: Response, db: Session = Depends(get_db)):
    return unwrap_result(event_planning.delete_event_resource(principal, id, resource_id, db), response)
