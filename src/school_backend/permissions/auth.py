"""
Session based authentication.

The signed session cookie only carries the user id; the Principal is
rebuilt from the database on every request so role changes and class
reassignments take effect immediately.
"""

import logging
from typing import Optional
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from school_backend.database import get_db
from school_backend.api.exceptions import UnauthorizedException
from school_backend.interface.passwords import verify_password
from school_backend.interface.results import LOGIN_REQUIRED
from school_backend.model.auth import User
from school_backend.model.school import Teacher, Parent, Student
from school_backend.permissions.principal import Principal

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"
SESSION_ROLE_KEY = "role"


class AuthenticationService:
    """Service for checking login credentials"""

    @staticmethod
    def authenticate_password(email: str, password: str, db: Session) -> User:
        """Return the user for valid credentials, raise UnauthorizedException otherwise"""

        user = db.query(User).filter(User.email == email.strip().lower()).first()

        if user is None or not verify_password(password, user.password):
            logger.info(f"Failed login attempt for {email}")
            raise UnauthorizedException("Invalid email or password")

        return user


class PrincipalBuilder:
    """Builder for creating Principal objects from the current database state"""

    @staticmethod
    def build(user_id: str, db: Session) -> Optional[Principal]:
        """Build a Principal for ``user_id``, or ``None`` when the user no longer exists"""

        user = db.query(User.id, User.name, User.role).filter(User.id == user_id).first()
        if user is None:
            return None

        teacher_id = db.query(Teacher.id).filter(Teacher.user_id == user.id).scalar()
        parent_id = db.query(Parent.id).filter(Parent.user_id == user.id).scalar()
        student_id = db.query(Student.id).filter(Student.user_id == user.id).scalar()

        return Principal(
            user_id=user.id,
            role=user.role,
            name=user.name,
            teacher_id=teacher_id,
            parent_id=parent_id,
            student_id=student_id,
        )


def login_session(request: Request, user: User) -> None:
    request.session.clear()
    request.session[SESSION_USER_KEY] = user.id
    request.session[SESSION_ROLE_KEY] = user.role.value


def logout_session(request: Request) -> None:
    request.session.clear()


def get_optional_principal(request: Request, db: Session = Depends(get_db)) -> Optional[Principal]:
    """The acting principal, or ``None`` for anonymous requests"""

    user_id = request.session.get(SESSION_USER_KEY)
    if not user_id:
        return None

    principal = PrincipalBuilder.build(user_id, db)
    if principal is None:
        # Account was deleted after the session was issued
        logger.info(f"Session for unknown user {user_id} discarded")
        request.session.clear()
    return principal


def get_current_principal(principal: Optional[Principal] = Depends(get_optional_principal)) -> Principal:
    """
    Main dependency for getting the current authenticated principal.
    Anonymous requests are rejected with 401.
    """
    if principal is None:
        raise UnauthorizedException(LOGIN_REQUIRED)
    return principal
