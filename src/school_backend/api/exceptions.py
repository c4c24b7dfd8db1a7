from fastapi import HTTPException, status
from typing import Any, Dict, Optional, Type


class SchoolException(HTTPException):
    """HTTPException with a fixed status code and a fallback detail"""

    code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: Any = None, headers: Optional[Dict[str, str]] = None):
        super().__init__(status_code=self.code, detail=detail or self.default_detail, headers=headers)


class NotFoundException(SchoolException):
    code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class ForbiddenException(SchoolException):
    code = status.HTTP_403_FORBIDDEN
    default_detail = "Forbidden"


class BadRequestException(SchoolException):
    code = status.HTTP_400_BAD_REQUEST
    default_detail = "Bad request"


class UnauthorizedException(SchoolException):
    code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"


class ConflictException(SchoolException):
    code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class InternalServerException(SchoolException):
    pass


_BY_STATUS: Dict[int, Type[SchoolException]] = {
    exception.code: exception
    for exception in (
        NotFoundException,
        ForbiddenException,
        BadRequestException,
        UnauthorizedException,
        ConflictException,
        InternalServerException,
    )
}


def response_to_http_exception(status_code: int, details: Any) -> Optional[SchoolException]:
    exception = _BY_STATUS.get(status_code)
    if exception is None:
        return None
    return exception(detail=details)
