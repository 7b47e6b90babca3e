"""
Access Control Policy - static route/action to role tables

Every check reads the tables directly, so a role change is reflected on the
next call. Roles form no hierarchy: each entry lists its roles explicitly,
and a child route never inherits from its parent.
"""

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Union

from ..models.profile import UserRole, ALL_USER_ROLES
from ..schemas.auth import Action


@dataclass(frozen=True)
class NavItem:
    href: str
    label: str
    roles: FrozenSet[UserRole]
    sub_items: List["NavItem"] = field(default_factory=list)


def _roles(*roles: UserRole) -> FrozenSet[UserRole]:
    return frozenset(roles)


ALL = frozenset(ALL_USER_ROLES)

NAV_ITEMS: List[NavItem] = [
    NavItem("/dashboard", "Dashboard", ALL),
    NavItem("/dashboard/profile", "My Profile", ALL),
    NavItem(
        "/dashboard/visitor-management",
        "Visitor Management",
        _roles(UserRole.RESIDENT, UserRole.SECURITY_OPERATIVE, UserRole.ESTATE_MANAGER, UserRole.ADMIN),
        [
            NavItem("/dashboard/visitor-management/pre-authorize", "Pre-Authorize Visitor",
                    _roles(UserRole.RESIDENT)),
            NavItem("/dashboard/visitor-management/check-in-out", "Check-In/Out",
                    _roles(UserRole.SECURITY_OPERATIVE)),
            NavItem("/dashboard/visitor-management/logs", "Visitor Logs",
                    _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN, UserRole.SECURITY_OPERATIVE)),
        ],
    ),
    NavItem(
        "/dashboard/estate-administration",
        "Estate Administration",
        _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN, UserRole.SUPER_ADMIN),
        [
            NavItem("/dashboard/estate-administration/residents", "Manage Residents",
                    _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN)),
            NavItem("/dashboard/estate-administration/security-staff", "Manage Security",
                    _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN)),
            NavItem("/dashboard/estate-administration/vehicles", "Manage Vehicles",
                    _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN)),
        ],
    ),
    NavItem("/dashboard/security-operations", "Security Ops",
            _roles(UserRole.SECURITY_OPERATIVE, UserRole.ESTATE_MANAGER, UserRole.ADMIN)),
    NavItem("/dashboard/system-management", "System Management",
            _roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)),
]

ACTION_ROLES: Dict[Action, FrozenSet[UserRole]] = {
    Action.VISITOR_CREATE: _roles(UserRole.RESIDENT),
    Action.VISITOR_REVOKE: _roles(UserRole.RESIDENT, UserRole.ADMIN, UserRole.SUPER_ADMIN),
    Action.VISITOR_VERIFY: _roles(UserRole.SECURITY_OPERATIVE),
    Action.VISITOR_CHECK_IN: _roles(UserRole.SECURITY_OPERATIVE),
    Action.VISITOR_CHECK_OUT: _roles(UserRole.SECURITY_OPERATIVE),
    Action.VISITOR_READ_LOGS: _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN, UserRole.SECURITY_OPERATIVE),
    Action.VISITOR_EXPIRE: _roles(UserRole.ESTATE_MANAGER, UserRole.ADMIN, UserRole.SUPER_ADMIN),
}

# Roles that may revoke a visitor authorized by someone else
REVOKE_OVERRIDE_ROLES = _roles(UserRole.ADMIN, UserRole.SUPER_ADMIN)

DASHBOARD_VIEWS = {
    UserRole.RESIDENT: "resident",
    UserRole.SECURITY_OPERATIVE: "security",
    UserRole.ESTATE_MANAGER: "placeholder",
    UserRole.ADMIN: "placeholder",
    UserRole.SUPER_ADMIN: "placeholder",
}


def _flatten(items: List[NavItem]):
    for item in items:
        yield item
        yield from _flatten(item.sub_items)


def _route_table() -> Dict[str, FrozenSet[UserRole]]:
    return {item.href: item.roles for item in _flatten(NAV_ITEMS)}


ROUTE_ROLES: Dict[str, FrozenSet[UserRole]] = _route_table()


def allowed_roles(identifier: Union[str, Action]) -> Optional[FrozenSet[UserRole]]:
    """Declared role set for a route or action, None when unrestricted"""
    if isinstance(identifier, Action):
        return ACTION_ROLES.get(identifier)
    try:
        return ACTION_ROLES[Action(identifier)]
    except ValueError:
        pass
    return ROUTE_ROLES.get(identifier.rstrip("/") or "/")


def is_allowed(role: Optional[UserRole], identifier: Union[str, Action]) -> bool:
    """
    True if role may see/use the route or action.

    Identifiers with no entry are open to every role; a missing role is
    only let through to those.
    """
    roles = allowed_roles(identifier)
    if roles is None:
        return True
    return role is not None and UserRole.parse(role) in roles


def allowed_actions(role: Optional[UserRole]) -> List[Action]:
    return [action for action in Action if is_allowed(role, action)]


def navigation_for(role: Optional[UserRole]) -> List[NavItem]:
    """Nav tree for role; children are filtered on their own role sets"""
    visible = []
    for item in NAV_ITEMS:
        if not is_allowed(role, item.href):
            continue
        children = [child for child in item.sub_items if is_allowed(role, child.href)]
        visible.append(NavItem(item.href, item.label, item.roles, children))
    return visible


def dashboard_view_for(role: Optional[UserRole]) -> str:
    parsed = UserRole.parse(role) if role is not None else None
    return DASHBOARD_VIEWS.get(parsed, "denied")
