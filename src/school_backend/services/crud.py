from typing import Any, Optional
from pydantic import BaseModel
from sqlalchemy.orm import Session, Query

from school_backend.api.exceptions import ConflictException, ForbiddenException, NotFoundException
from school_backend.interface.base import EntityInterface, ListQuery, PagedQuery
from school_backend.permissions.core import check_permissions
from school_backend.permissions.handlers import Action
from school_backend.permissions.principal import Principal


_LABELS = {
    "SchoolClass": "Class",
}


def entity_label(db_type: Any) -> str:
    """Human readable entity name used in messages ("Class", "Student")"""
    return _LABELS.get(db_type.__name__, db_type.__name__)


def exists(db: Session, db_type: Any, id: str) -> bool:
    return db.query(db_type.id).filter(db_type.id == id).first() is not None


def get_or_404(db: Session, db_type: Any, id: Optional[str], label: Optional[str] = None):
    item = db.get(db_type, id) if id else None
    if item is None:
        raise NotFoundException(detail=f"{label or entity_label(db_type)} not found")
    return item


def get_scoped(principal: Principal, db: Session, db_type: Any, id: str, action: Action = Action.GET, query: Optional[Query] = None):
    """Fetch one record through the principal's scope.

    A record outside the scope is a denial, a record that does not exist
    at all is a 404.
    """
    if query is None:
        query = check_permissions(principal, db_type, action, db)

    item = query.filter(db_type.id == id).first()
    if item is not None:
        return item

    if exists(db, db_type, id):
        raise ForbiddenException()
    raise NotFoundException(detail=f"{entity_label(db_type)} not found")


def paginate(query: Query, params: ListQuery) -> Query:
    offset = params.offset() if isinstance(params, PagedQuery) else params.skip
    if offset:
        query = query.offset(offset)
    if params.limit is not None:
        query = query.limit(params.limit)
    return query


def list_scoped(principal: Principal, db: Session, params: ListQuery, interface: EntityInterface, query: Optional[Query] = None):
    """Scoped list: the principal's scope is the base query, ``params`` only narrow it"""

    db_type = interface.model

    if query is None:
        query = check_permissions(principal, db_type, Action.LIST, db)

    query = interface.search(db, query, params)

    total = query.order_by(None).count()

    items = [interface.list.model_validate(entity, from_attributes=True) for entity in paginate(query, params).all()]

    return items, total


def apply_update(db_item: Any, entity: BaseModel | dict, nullable: tuple = ()) -> dict:
    """Copy the set fields of ``entity`` onto ``db_item``; returns the applied changes.

    An explicit ``None`` only clears the fields listed in ``nullable``.
    """
    if isinstance(entity, BaseModel):
        entity = entity.model_dump(exclude_unset=True)

    entity = {key: value for key, value in entity.items() if value is not None or key in nullable}

    for key, value in entity.items():
        setattr(db_item, key, value)

    return entity


def ensure_unique(db: Session, column: Any, value: Any, field: str, reason: str, exclude_id: Optional[str] = None) -> None:
    """Friendly pre-check for a unique column; the database constraint stays authoritative"""
    query = db.query(column.class_.id).filter(column == value)
    if exclude_id is not None:
        query = query.filter(column.class_.id != exclude_id)
    if query.first() is not None:
        raise ConflictException(detail={"error": reason, "errors": {field: [reason]}})
