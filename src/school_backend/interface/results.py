from enum import Enum
from typing import Any, Dict, List, Optional
from fastapi import status
from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel, Field

from school_backend.api.exceptions import response_to_http_exception

FORM_ERROR_KEY = "_form"
GENERIC_ERROR = "Something went wrong. Please try again."
LOGIN_REQUIRED = "You must be logged in"
NOT_AUTHORIZED = "You are not authorized to perform this action"

# Request locations FastAPI prefixes to error paths
_LOCATIONS = ("body", "query", "path")


class ResultKind(str, Enum):
    OK = "ok"
    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    BUSINESS_RULE = "business_rule"
    INTERNAL = "internal"


STATUS_CODES = {
    ResultKind.OK: status.HTTP_200_OK,
    ResultKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ResultKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ResultKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ResultKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ResultKind.CONFLICT: status.HTTP_409_CONFLICT,
    ResultKind.BUSINESS_RULE: status.HTTP_400_BAD_REQUEST,
    ResultKind.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def validation_errors(exc) -> Dict[str, List[str]]:
    """Flatten pydantic or request validation errors into a field-keyed error map."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in _LOCATIONS]
        field = ".".join(loc) if loc else FORM_ERROR_KEY
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


class ActionResult(BaseModel):
    """Uniform outcome of every service operation.

    ``kind`` tags the outcome; ``errors`` maps field names (or ``_form``)
    to messages. Form-style callers get :meth:`to_response`, HTTP routes
    call :meth:`unwrap` which raises the matching ``HTTPException``.
    """

    kind: ResultKind = ResultKind.OK
    data: Any = None
    message: Optional[str] = None
    errors: Dict[str, List[str]] = Field(default_factory=dict)
    status_code: Optional[int] = None
    total: Optional[int] = Field(None, description="Size of the full result set for list operations")

    @property
    def success(self) -> bool:
        return self.kind == ResultKind.OK

    @property
    def http_status(self) -> int:
        if self.status_code is not None:
            return self.status_code
        return STATUS_CODES[self.kind]

    @classmethod
    def ok(cls, data: Any = None, message: Optional[str] = None, status_code: Optional[int] = None, total: Optional[int] = None) -> "ActionResult":
        return cls(kind=ResultKind.OK, data=data, message=message, status_code=status_code, total=total)

    @classmethod
    def validation(cls, errors: Dict[str, List[str]]) -> "ActionResult":
        return cls(kind=ResultKind.VALIDATION, message="Invalid input", errors=errors)

    @classmethod
    def unauthenticated(cls, reason: str = LOGIN_REQUIRED) -> "ActionResult":
        return cls(kind=ResultKind.UNAUTHENTICATED, message=reason, errors={FORM_ERROR_KEY: [reason]})

    @classmethod
    def forbidden(cls, reason: str = NOT_AUTHORIZED) -> "ActionResult":
        return cls(kind=ResultKind.FORBIDDEN, message=reason, errors={FORM_ERROR_KEY: [reason]})

    @classmethod
    def not_found(cls, what: str) -> "ActionResult":
        reason = f"{what} not found"
        return cls(kind=ResultKind.NOT_FOUND, message=reason, errors={FORM_ERROR_KEY: [reason]})

    @classmethod
    def conflict(cls, field: str, reason: str) -> "ActionResult":
        return cls(kind=ResultKind.CONFLICT, message=reason, errors={field: [reason]})

    @classmethod
    def business_rule(cls, reason: str) -> "ActionResult":
        return cls(kind=ResultKind.BUSINESS_RULE, message=reason, errors={FORM_ERROR_KEY: [reason]})

    @classmethod
    def internal(cls) -> "ActionResult":
        return cls(kind=ResultKind.INTERNAL, message=GENERIC_ERROR, errors={FORM_ERROR_KEY: [GENERIC_ERROR]})

    def to_response(self) -> dict:
        response: Dict[str, Any] = {"success": self.success}
        if self.data is not None:
            response["data"] = jsonable_encoder(self.data)
        if self.success:
            if self.message:
                response["message"] = self.message
            if self.total is not None:
                response["total"] = self.total
        else:
            response["error"] = self.message
            response["errors"] = self.errors
        return response

    def unwrap(self) -> Any:
        """Return ``data`` on success, raise the matching HTTP exception otherwise."""
        if self.success:
            return self.data
        detail = {"error": self.message, "errors": self.errors}
        raise response_to_http_exception(self.http_status, detail)
