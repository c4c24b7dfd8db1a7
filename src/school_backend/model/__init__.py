from .base import Base, metadata
from .auth import Role, User
from .school import Teacher, Parent, SchoolClass, Student
from .academics import AttendanceStatus, Grade, Attendance
from .message import Message, Notification
from .event import RegistrationStatus, Event, Registration, ScheduleItem, EventResource

__all__ = [
    'Base',
    'metadata',
    # Auth
    'Role',
    'User',
    # School structure
    'Teacher',
    'Parent',
    'SchoolClass',
    'Student',
    # Academics
    'AttendanceStatus',
    'Grade',
    'Attendance',
    # Messaging
    'Message',
    'Notification',
    # Events
    'RegistrationStatus',
    'Event',
    'Registration',
    'ScheduleItem',
    'EventResource',
]
