"""
Boundary between service operations and their callers.

Service functions take the acting principal first and raise the
``HTTPException`` subclasses of ``api.exceptions``; ``service_action``
turns every outcome into an :class:`ActionResult` so nothing escapes
the module boundary.
"""

import functools
import logging
import re
from typing import Any, Dict, Optional, Type, TypeVar
from fastapi import HTTPException, status
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from school_backend.api.exceptions import ConflictException, BadRequestException
from school_backend.interface.results import (
    ActionResult,
    ResultKind,
    FORM_ERROR_KEY,
    LOGIN_REQUIRED,
    NOT_AUTHORIZED,
    validation_errors,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

_KINDS = {
    status.HTTP_400_BAD_REQUEST: ResultKind.BUSINESS_RULE,
    status.HTTP_401_UNAUTHORIZED: ResultKind.UNAUTHENTICATED,
    status.HTTP_403_FORBIDDEN: ResultKind.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ResultKind.NOT_FOUND,
    status.HTTP_409_CONFLICT: ResultKind.CONFLICT,
}

_DEFAULT_MESSAGES = {
    ResultKind.UNAUTHENTICATED: LOGIN_REQUIRED,
    ResultKind.FORBIDDEN: NOT_AUTHORIZED,
    ResultKind.NOT_FOUND: "Not found",
    ResultKind.CONFLICT: "Record already exists",
    ResultKind.BUSINESS_RULE: "Invalid request",
}

# Postgres: 'Key (email)=(a@b.c) already exists.', SQLite: 'UNIQUE constraint failed: user.email'
_PG_UNIQUE = re.compile(r"Key \((?P<columns>[^)]+)\)=")
_SQLITE_UNIQUE = re.compile(r"UNIQUE constraint failed: (?P<columns>[\w.,\s]+)")


def parse_model(model: Type[ModelT], payload: Any) -> ModelT:
    """Accept either an already validated model or raw (form) data"""
    if isinstance(payload, model):
        return payload
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    return model.model_validate(payload or {})


def unique_violation_column(error: IntegrityError) -> Optional[str]:
    """Name of the first column of the violated unique constraint, if it can be told"""
    message = str(error.orig) if getattr(error, "orig", None) is not None else str(error)
    match = _PG_UNIQUE.search(message) or _SQLITE_UNIQUE.search(message)
    if match is None:
        return None
    first = match.group("columns").split(",")[0].strip()
    return first.split(".")[-1]


def commit_or_conflict(db: Session, messages: Optional[Dict[str, str]] = None) -> None:
    """Commit the unit of work; unique violations become field-level conflicts"""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        column = unique_violation_column(e)
        if column is None:
            logger.warning(f"Integrity error without a unique column: {e.orig}")
            raise BadRequestException(detail="The change conflicts with existing records")
        reason = (messages or {}).get(column) or f"{column.replace('_', ' ').capitalize()} already exists"
        raise ConflictException(detail={"error": reason, "errors": {column: [reason]}})


def result_from_http_exception(e: HTTPException) -> ActionResult:
    kind = _KINDS.get(e.status_code, ResultKind.INTERNAL)
    if kind == ResultKind.INTERNAL:
        return ActionResult.internal()

    detail = e.detail
    errors: Dict[str, Any] = {}
    message = None
    if isinstance(detail, dict):
        message = detail.get("error")
        errors = detail.get("errors") or {}
    elif isinstance(detail, str):
        message = detail

    message = message or _DEFAULT_MESSAGES[kind]
    return ActionResult(kind=kind, message=message, errors=errors or {FORM_ERROR_KEY: [message]})


def _find_session(args, kwargs) -> Optional[Session]:
    for value in list(args) + list(kwargs.values()):
        if isinstance(value, Session):
            return value
    return None


def service_action(func):
    """Wrap a service function so every outcome is an ActionResult.

    The first positional argument is the acting principal; ``None`` means
    an anonymous caller and is rejected before the function runs.
    """

    @functools.wraps(func)
    def wrapper(principal, *args, **kwargs) -> ActionResult:
        if principal is None:
            return ActionResult.unauthenticated()

        try:
            result = func(principal, *args, **kwargs)
        except HTTPException as e:
            return result_from_http_exception(e)
        except ValidationError as e:
            return ActionResult.validation(validation_errors(e))
        except Exception:
            logger.exception(f"Unexpected error in {func.__name__}")
            db = _find_session(args, kwargs)
            if db is not None:
                db.rollback()
            return ActionResult.internal()

        if isinstance(result, ActionResult):
            return result
        return ActionResult.ok(result)

    return wrapper
