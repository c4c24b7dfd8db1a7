import enum
from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import relationship

from .base import Base, id_column, created_at_column, updated_at_column


class RegistrationStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class Event(Base):
    __tablename__ = 'event'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    title = Column(String(255), nullable=False)
    description = Column(String(8192), nullable=False)
    date = Column(DateTime, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    location = Column(String(255), nullable=False)
    category = Column(String(64), nullable=False)
    image = Column(String(1024))
    capacity = Column(Integer)
    registration_deadline = Column(DateTime)
    is_public = Column(Boolean, nullable=False, default=True, server_default=text("true"))
    requires_approval = Column(Boolean, nullable=False, default=False, server_default=text("false"))
    organizer_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False, index=True)

    organizer = relationship('User', back_populates='organized_events')
    registrations = relationship('Registration', back_populates='event', cascade='all, delete-orphan')
    schedule_items = relationship('ScheduleItem', back_populates='event', cascade='all, delete-orphan', order_by='ScheduleItem.start_time')
    resources = relationship('EventResource', back_populates='event', cascade='all, delete-orphan', order_by='EventResource.name')


class Registration(Base):
    __tablename__ = 'registration'
    __table_args__ = (
        Index('registration_user_event_key', 'user_id', 'event_id', unique=True),
    )

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    user_id = Column(ForeignKey('user.id', ondelete='CASCADE'), nullable=False)
    event_id = Column(ForeignKey('event.id', ondelete='CASCADE'), nullable=False)
    status = Column(Enum(RegistrationStatus, name='registration_status'), nullable=False, default=RegistrationStatus.PENDING)

    user = relationship('User', back_populates='registrations')
    event = relationship('Event', back_populates='registrations')


class ScheduleItem(Base):
    __tablename__ = 'event_schedule_item'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    title = Column(String(255), nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    location = Column(String(255), nullable=False, default="", server_default=text("''"))
    event_id = Column(ForeignKey('event.id', ondelete='CASCADE'), nullable=False, index=True)

    event = relationship('Event', back_populates='schedule_items')


class EventResource(Base):
    __tablename__ = 'event_resource'

    id = id_column()
    created_at = created_at_column()
    updated_at = updated_at_column()
    name = Column(String(255), nullable=False)
    type = Column(String(64), nullable=False)
    quantity = Column(Integer, nullable=False)
    event_id = Column(ForeignKey('event.id', ondelete='CASCADE'), nullable=False, index=True)

    event = relationship('Event', back_populates='resources')
