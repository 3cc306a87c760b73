"""
Role capabilities.

One table answers "may this role do that"; views never compare role strings
themselves. Use ``capability('request.approve')`` in ``permission_classes``
or ``require_capability(user, action)`` inside a view.
"""
import logging

from rest_framework.permissions import BasePermission

from .exceptions import AuthorizationError

logger = logging.getLogger(__name__)

ADMIN = 'admin'
ENGINEER = 'engineer'
FOREMAN = 'foreman'
PROJECT_MANAGER = 'project_manager'

ALL_ROLES = frozenset({ADMIN, ENGINEER, FOREMAN, PROJECT_MANAGER})
APPROVERS = frozenset({ADMIN, ENGINEER, PROJECT_MANAGER})
RECEIVERS = frozenset({ADMIN, FOREMAN})
ADMINS = frozenset({ADMIN})

CAPABILITIES = {
    # Material requests
    'request.view': ALL_ROLES,
    'request.create': ALL_ROLES,
    'request.approve': APPROVERS,
    'request.decline': APPROVERS,
    'request.order': APPROVERS,
    'request.review': APPROVERS,
    'request.deliver': RECEIVERS,
    'request.verify': RECEIVERS,

    # Catalog
    'material.view': ALL_ROLES,
    'material.create': ALL_ROLES,
    'material.approve': ADMINS,
    'material.manage': ADMINS,

    # Projects
    'project.view': ALL_ROLES,
    'project.manage': ADMINS,
    'milestone.manage': APPROVERS,
    'task.manage': APPROVERS,

    # Everything else
    'personnel.manage': ADMINS,
    'inventory.view': ALL_ROLES,
    'inventory.adjust': ADMINS,
    'asset.view': ALL_ROLES,
    'asset.manage': ADMINS,
    'log.view': ALL_ROLES,
    'dashboard.view': ADMINS,
}

# Dashboard sections each role sees in the navigation
DASHBOARD_ACCESS = {
    ADMIN: ['dashboard', 'projects', 'inventory', 'materialsRequest', 'personnel'],
    ENGINEER: ['dashboard'],
    FOREMAN: ['dashboard'],
    PROJECT_MANAGER: ['dashboard'],
}


def role_of(user):
    if user is None or not user.is_authenticated:
        return None
    if user.is_superuser:
        return ADMIN
    return user.role


def has_capability(user, action):
    """True when ``user``'s role is listed for ``action``. Unknown actions are denied."""
    allowed = CAPABILITIES.get(action)
    if allowed is None:
        logger.warning(f"Capability check for unknown action '{action}'")
        return False
    return role_of(user) in allowed


def require_capability(user, action):
    if not has_capability(user, action):
        logger.warning(f"User {getattr(user, 'pk', None)} ({role_of(user)}) denied '{action}'")
        raise AuthorizationError(f"Your role is not allowed to perform '{action}'.")


def capability(action):
    """Build a DRF permission class bound to one action of the table."""

    class HasCapability(BasePermission):
        def has_permission(self, request, view):
            if not request.user or not request.user.is_authenticated:
                return False
            require_capability(request.user, action)
            return True

    HasCapability.__name__ = f"HasCapability[{action}]"
    return HasCapability
