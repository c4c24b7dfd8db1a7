import datetime
import re
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from sqlalchemy import or_, func
from sqlalchemy.orm import Session, selectinload

from school_backend.interface.base import BaseEntityGet, BaseEntityList, EntityInterface, PagedQuery, not_null, strip_required
from school_backend.interface.users import UserBrief
from school_backend.model.event import Event, RegistrationStatus

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def naive_utc(value: Optional[datetime.datetime]) -> Optional[datetime.datetime]:
    """Stored timestamps are naive UTC; aware inputs are converted, naive ones taken as UTC"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(datetime.timezone.utc).replace(tzinfo=None)


def validate_time(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must use the HH:MM format")
    return value


class EventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1, max_length=8192)
    date: datetime.datetime
    start_time: str
    end_time: str
    location: str = Field(min_length=1, max_length=255)
    category: str = Field(min_length=1, max_length=64)
    image: Optional[str] = Field(None, max_length=1024)
    capacity: Optional[int] = Field(None, ge=1)
    registration_deadline: Optional[datetime.datetime] = None
    is_public: bool = True
    requires_approval: bool = False

    @field_validator('title', 'description', 'location', 'category')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v):
        return validate_time(v)

    @field_validator('date', 'registration_deadline')
    @classmethod
    def validate_timestamps(cls, v):
        return naive_utc(v)

    @model_validator(mode='after')
    def validate_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1, max_length=8192)
    date: Optional[datetime.datetime] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = Field(None, min_length=1, max_length=64)
    image: Optional[str] = Field(None, max_length=1024)
    capacity: Optional[int] = Field(None, ge=1)
    registration_deadline: Optional[datetime.datetime] = None
    is_public: Optional[bool] = None
    requires_approval: Optional[bool] = None

    @field_validator('title', 'description', 'location', 'category')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v):
        return validate_time(v)

    @field_validator('date', 'registration_deadline')
    @classmethod
    def validate_timestamps(cls, v):
        return naive_utc(v)


class EventList(BaseEntityList):
    id: str
    title: str
    description: str
    date: datetime.datetime
    start_time: str
    end_time: str
    location: str
    category: str
    image: Optional[str] = None
    capacity: Optional[int] = None
    registration_deadline: Optional[datetime.datetime] = None
    is_public: bool
    requires_approval: bool
    organizer_id: str
    organizer: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class EventGet(EventList):
    registration_count: int = 0
    is_registered: bool = False
    registration_status: Optional[RegistrationStatus] = None
    can_edit: bool = False


class EventQuery(PagedQuery):
    category: Optional[str] = None
    search: Optional[str] = None
    on_date: Optional[datetime.date] = Field(None, alias="date")
    start_date: Optional[datetime.date] = None
    end_date: Optional[datetime.date] = None
    organizer_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True)


class RegistrationGet(BaseEntityGet):
    id: str
    user_id: str
    event_id: str
    status: RegistrationStatus
    user: Optional[UserBrief] = None

    model_config = ConfigDict(from_attributes=True)


class RegistrationStatusUpdate(BaseModel):
    status: RegistrationStatus


class ScheduleItemCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    start_time: str
    end_time: str
    location: str = Field("", max_length=255)

    @field_validator('title')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v):
        return validate_time(v)

    @model_validator(mode='after')
    def validate_order(self):
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self


class ScheduleItemUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)

    @field_validator('title')
    @classmethod
    def validate_required(cls, v):
        return strip_required(not_null(v))

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_times(cls, v):
        return validate_time(not_null(v))


class ScheduleItemGet(BaseEntityGet):
    id: str
    event_id: str
    title: str
    start_time: str
    end_time: str
    location: str

    model_config = ConfigDict(from_attributes=True)


class EventResourceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    type: str = Field(min_length=1, max_length=64)
    quantity: int = Field(ge=1)

    @field_validator('name', 'type')
    @classmethod
    def validate_required(cls, v):
        return strip_required(v)


class EventResourceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    type: Optional[str] = Field(None, min_length=1, max_length=64)
    quantity: Optional[int] = Field(None, ge=1)

    @field_validator('name', 'type')
    @classmethod
    def validate_required(cls, v):
        return strip_required(not_null(v))

    @field_validator('quantity')
    @classmethod
    def validate_quantity(cls, v):
        return not_null(v)


class EventResourceGet(BaseEntityGet):
    id: str
    event_id: str
    name: str
    type: str
    quantity: int

    model_config = ConfigDict(from_attributes=True)


def event_search(db: Session, query, params: Optional[EventQuery]):
    query = query.options(selectinload(Event.organizer))

    if params.category is not None:
        query = query.filter(Event.category == params.category)
    if params.search:
        pattern = f"%{params.search.strip()}%"
        query = query.filter(or_(Event.title.ilike(pattern), Event.description.ilike(pattern), Event.location.ilike(pattern)))
    if params.on_date is not None:
        query = query.filter(func.date(Event.date) == params.on_date)
    if params.start_date is not None:
        query = query.filter(Event.date >= datetime.datetime.combine(params.start_date, datetime.time.min))
    if params.end_date is not None:
        query = query.filter(Event.date <= datetime.datetime.combine(params.end_date, datetime.time.max))
    if params.organizer_id is not None:
        query = query.filter(Event.organizer_id == params.organizer_id)

    return query.order_by(Event.date)


class EventInterface(EntityInterface):
    create = EventCreate
    get = EventGet
    list = EventList
    update = EventUpdate
    query = EventQuery
    search = event_search
    endpoint = "events"
    model = Event
