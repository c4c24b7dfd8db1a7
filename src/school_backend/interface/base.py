from abc import ABC
from datetime import datetime
from typing import Optional, Any
from pydantic import BaseModel, Field


class ListQuery(BaseModel):
    skip: Optional[int] = Field(0, ge=0)
    limit: Optional[int] = Field(100, ge=1, le=1000)


class PagedQuery(ListQuery):
    """List query that also accepts a 1-based ``page`` instead of ``skip``"""
    page: Optional[int] = Field(None, ge=1)

    def offset(self) -> int:
        if self.page is not None and self.limit is not None:
            return (self.page - 1) * self.limit
        return self.skip or 0


class EntityInterface(ABC):
    create: BaseModel = None
    get: BaseModel = None
    list: BaseModel = None
    update: BaseModel = None
    query: BaseModel = None
    search: Any = None
    endpoint: str = None
    model: Any = None


class BaseEntityList(BaseModel):
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Update timestamp")


class BaseEntityGet(BaseEntityList):
    pass


def not_null(value):
    """Reject an explicit null for a column that cannot be cleared"""
    if value is None:
        raise ValueError("This field cannot be empty")
    return value


def strip_required(value: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace and reject blank strings"""
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("This field is required")
    return value


def canonical_level(value: Optional[str]) -> Optional[str]:
    """Class levels are compared in one canonical form: trimmed and upper-cased ("10", "O LEVEL")."""
    if value is None:
        return value
    value = " ".join(value.split()).upper()
    if not value:
        raise ValueError("This field is required")
    return value
