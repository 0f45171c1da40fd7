"""Permission checking utilities for clearance.

Provides helpers over a resolved permission set and the FastAPI decorator and
dependency that enforce access decisions at the request boundary.

Denied requests get a generic 403 "Access denied"; the deny reason is only
logged and audited, never returned to the client.
"""

from functools import wraps
from typing import Callable, Iterable, List, Optional, Union

from fastapi import HTTPException, Request, status

from .engine import AccessRequest
from .permissions import OwnerRelationship, Permission, PermissionCatalog
from .resolver import EffectivePermissionSet, Principal

PermissionRef = Union[str, Permission]

ACCESS_DENIED = "Access denied"


def _name(permission: PermissionRef) -> str:
    return permission.name if isinstance(permission, Permission) else permission


class PermissionChecker:
    """Coarse membership checks against a resolved permission set.

    These ignore scope. Use the access engine (or ``AccessControlService.check``)
    when the request concerns a particular resource.
    """

    def __init__(self, effective: EffectivePermissionSet):
        """
        Initialize with a principal's effective permission set.

        Args:
            effective: Result of resolving the principal
        """
        self.effective = effective

    def has_permission(self, permission: PermissionRef) -> bool:
        """Check if the set contains a permission name or department tag."""
        return self.effective.has_tag(_name(permission))

    def has_any_permission(self, permissions: Iterable[PermissionRef]) -> bool:
        """Check if the set contains any of the given permissions."""
        return any(self.has_permission(p) for p in permissions)

    def has_all_permissions(self, permissions: Iterable[PermissionRef]) -> bool:
        """Check if the set contains all of the given permissions."""
        return all(self.has_permission(p) for p in permissions)

    def accessible_modules(self, catalog: PermissionCatalog) -> List[str]:
        """Modules in which the set holds at least one permission."""
        return [
            module
            for module in catalog.modules()
            if any(p.name in self.effective for p in catalog.for_module(module))
        ]


# -- FastAPI integration --------------------------------------------------


def get_access_control(request: Request):
    """The AccessControlService installed on ``app.state.access_control``."""
    service = getattr(request.app.state, "access_control", None)
    if service is None:
        raise RuntimeError("Access control service is not configured on the app")
    return service


def get_principal(request: Request) -> Principal:
    """The principal authentication placed on ``request.state.principal``."""
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return principal


def _enforce(
    service,
    principal: Principal,
    permissions: Iterable[PermissionRef],
    relationship: OwnerRelationship,
    require_all: bool,
) -> None:
    snapshot = service.snapshot
    effective = service.resolve_permissions(principal, snapshot)
    decisions = [
        service.authorize(effective, AccessRequest(_name(p), relationship), snapshot)
        for p in permissions
    ]
    allowed = all(decisions) if require_all else any(decisions)
    if not allowed:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=ACCESS_DENIED)


def require_permission(
    *permissions: PermissionRef,
    relationship: OwnerRelationship = OwnerRelationship.SELF,
    require_all: bool = False,
):
    """
    Decorator factory for FastAPI endpoints requiring specific permissions.

    The endpoint must accept ``request: Request``; the principal comes from
    ``request.state.principal`` unless the endpoint also takes a
    ``principal`` argument.

    Args:
        permissions: One or more permission names or Permission objects
        relationship: Relationship of the caller to the resources the endpoint touches
        require_all: If True, every permission must be allowed. Default: any one.

    Usage:
        @router.get("/calls")
        @require_permission("callcenter.view")
        async def list_calls(request: Request):
            ...

        @router.put("/calls/{id}")
        @require_permission("callcenter.edit_all", relationship="same-department")
        async def edit_call(id: str, request: Request):
            ...
    """
    relationship = OwnerRelationship(relationship)

    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request: Optional[Request] = kwargs.get("request")
            if request is None:
                for arg in args:
                    if isinstance(arg, Request):
                        request = arg
                        break
            if request is None:
                raise RuntimeError(f"{func.__name__} must accept a 'request' argument")

            principal = kwargs.get("principal") or get_principal(request)
            _enforce(
                get_access_control(request),
                principal,
                permissions,
                relationship,
                require_all,
            )
            return await func(*args, **kwargs)

        return wrapper
    return decorator


class PermissionDependency:
    """
    FastAPI dependency for permission checking.

    Usage:
        @router.get("/payroll", dependencies=[Depends(PermissionDependency("hr.payroll.view"))])
        async def payroll():
            ...
    """

    def __init__(
        self,
        *permissions: PermissionRef,
        relationship: OwnerRelationship = OwnerRelationship.SELF,
        require_all: bool = False,
    ):
        self.permissions = permissions
        self.relationship = OwnerRelationship(relationship)
        self.require_all = require_all

    async def __call__(self, request: Request) -> Principal:
        principal = get_principal(request)
        _enforce(
            get_access_control(request),
            principal,
            self.permissions,
            self.relationship,
            self.require_all,
        )
        return principal
