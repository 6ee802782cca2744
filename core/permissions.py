"""
Workspace role permissions.

Roles map to a fixed set of capabilities. Route handlers ask
``has_permission(role, "schedule")`` instead of comparing role names.
"""

from typing import Dict, FrozenSet, Optional, Union
from models.base import WorkspaceRole

CAPABILITIES: Dict[WorkspaceRole, FrozenSet[str]] = {
    WorkspaceRole.OWNER: frozenset({
        "view", "create", "edit", "delete", "schedule",
        "edit_workspace", "invite", "delete_workspace", "view_analytics",
    }),
    WorkspaceRole.ADMIN: frozenset({
        "view", "create", "edit", "delete", "schedule",
        "edit_workspace", "invite", "view_analytics",
    }),
    WorkspaceRole.EDITOR: frozenset({
        "view", "create", "edit", "delete", "schedule",
    }),
    WorkspaceRole.VIEWER: frozenset({"view"}),
}


def _coerce_role(role: Union[WorkspaceRole, str, None]) -> Optional[WorkspaceRole]:
    if role is None or isinstance(role, WorkspaceRole):
        return role
    try:
        return WorkspaceRole(role)
    except ValueError:
        return None


def has_permission(role: Union[WorkspaceRole, str, None], capability: str) -> bool:
    """Return True if ``role`` grants ``capability``. Unknown roles grant nothing."""
    role = _coerce_role(role)
    if role is None:
        return False
    return capability in CAPABILITIES[role]


def can_manage_members(role: Union[WorkspaceRole, str, None]) -> bool:
    return has_permission(role, "invite")


def is_owner(role: Union[WorkspaceRole, str, None]) -> bool:
    return _coerce_role(role) == WorkspaceRole.OWNER
