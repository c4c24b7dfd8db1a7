"""
Role-scoped permission system for the school backend

Main components:
- principal: the acting user (role plus teacher/parent/student profile ids)
- handlers: base permission handler interface and registry
- handlers_impl: concrete permission handlers for each entity
- query_builders: ownership subqueries (teacher -> class -> student, parent -> child)
- core: handler registration, checks and list-filter overrides
- auth: session authentication and Principal creation
"""

from .principal import Principal

from .handlers import (
    Action,
    PermissionHandler,
    PermissionRegistry,
    permission_registry,
)

from .core import (
    check_permissions,
    check_admin,
    can_perform,
    require,
    ensure_student_in_scope,
    apply_scope_overrides,
    initialize_permission_handlers,
)

from .auth import (
    get_current_principal,
    get_optional_principal,
    AuthenticationService,
    PrincipalBuilder,
)

__all__ = [
    "Principal",

    # Core permission functions
    "check_permissions",
    "check_admin",
    "can_perform",
    "require",
    "ensure_student_in_scope",
    "apply_scope_overrides",

    # Authentication
    "get_current_principal",
    "get_optional_principal",
    "AuthenticationService",
    "PrincipalBuilder",

    # Handlers
    "Action",
    "PermissionHandler",
    "PermissionRegistry",
    "permission_registry",

    # Initialization
    "initialize_permission_handlers",
]
