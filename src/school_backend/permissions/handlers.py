from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional, Type
from sqlalchemy.orm import Session, Query

from school_backend.permissions.principal import Principal
from school_backend.api.exceptions import ForbiddenException


class Action(str, Enum):
    CREATE = "create"
    GET = "get"
    LIST = "list"
    UPDATE = "update"
    DELETE = "delete"


READ_ACTIONS = (Action.GET, Action.LIST)
WRITE_ACTIONS = (Action.CREATE, Action.UPDATE, Action.DELETE)


class PermissionHandler(ABC):
    """Base class for entity-specific permission handlers"""

    def __init__(self, entity: Type[Any]):
        self.entity = entity
        self.resource_name = entity.__tablename__

    @abstractmethod
    def can_perform_action(self, principal: Principal, action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        """Check if principal can perform an action on a resource.

        Args:
            principal: Current principal
            action: Action to perform
            db: Session used to resolve ownership chains
            resource_id: Optional id of the targeted record
            context: Optional mapping of foreign keys of the record being
                created or modified (e.g., {"student_id": "..."})
        """
        pass

    @abstractmethod
    def build_query(self, principal: Principal, action: Action, db: Session) -> Query:
        """Build a query restricted to the records the principal may act on"""
        pass

    def check_admin(self, principal: Principal) -> bool:
        return principal.is_admin

    def deny(self) -> ForbiddenException:
        return ForbiddenException(detail={"entity": self.resource_name})

    def record_in_scope(self, principal: Principal, action: Action, db: Session, resource_id: str) -> bool:
        """Whether the record with ``resource_id`` is part of the principal's scope for ``action``."""
        try:
            query = self.build_query(principal, action, db)
        except ForbiddenException:
            return False
        return query.filter(self.entity.id == resource_id).first() is not None


class PermissionRegistry:
    """Registry for managing entity permission handlers"""

    _instance = None
    _handlers: Dict[Type[Any], PermissionHandler] = {}

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def register(self, entity: Type[Any], handler: PermissionHandler):
        """Register a permission handler for an entity"""
        self._handlers[entity] = handler

    def get_handler(self, entity: Type[Any]) -> Optional[PermissionHandler]:
        """Get the permission handler for an entity"""
        return self._handlers.get(entity)

    def check_permissions(self, principal: Principal, entity: Type[Any], action: Action, db: Session) -> Query:
        """Check permissions and return filtered query"""
        handler = self.get_handler(entity)
        if not handler:
            # Unregistered entities are admin-only
            if not principal.is_admin:
                raise ForbiddenException(detail={"entity": entity.__tablename__})
            return db.query(entity)

        return handler.build_query(principal, action, db)

    def can_perform_action(self, principal: Principal, entity: Type[Any], action: Action, db: Session, resource_id: Optional[str] = None, context: Optional[Dict[str, str]] = None) -> bool:
        handler = self.get_handler(entity)
        if not handler:
            return principal.is_admin
        return handler.can_perform_action(principal, action, db, resource_id, context)


# Global registry instance
permission_registry = PermissionRegistry()
