"""
Role based access to the working areas of the app.

Each area (orders, pickup, warehouse, suppliers, billing) is either editable,
view-only or hidden for a role. API views declare the area they belong to
and ``RoleAreaPermission`` lets safe methods through for viewers and
mutating methods through for editors.
"""

from rest_framework.permissions import BasePermission, SAFE_METHODS

EDIT = 'edit'
VIEW = 'view'

ROLE_PERMISSIONS = {
    'admin': {
        'orders': EDIT,
        'pickup': EDIT,
        'warehouse': EDIT,
        'suppliers': EDIT,
        'billing': EDIT,
        'settings': EDIT,
    },
    'warehouse': {
        'orders': EDIT,
        'pickup': VIEW,
        'warehouse': EDIT,
        'suppliers': EDIT,
    },
    'market_person': {
        'orders': VIEW,
        'pickup': EDIT,
        'warehouse': VIEW,
        'suppliers': EDIT,
    },
    'accountant': {
        'orders': VIEW,
        'warehouse': VIEW,
        'suppliers': VIEW,
        'billing': EDIT,
    },
}


def get_permissions(role, area):
    """Return ``{'can_view', 'can_edit', 'mode'}`` for a role in an area."""
    mode = ROLE_PERMISSIONS.get(role, {}).get(area)
    return {
        'can_view': mode is not None,
        'can_edit': mode == EDIT,
        'mode': mode or VIEW,
    }


def can_edit(user, area):
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return get_permissions(user.role, area)['can_edit']


def can_view(user, area):
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return get_permissions(user.role, area)['can_view']


class RoleAreaPermission(BasePermission):
    """
    Checks the area (``area`` on the permission or ``permission_area`` on a
    viewset) against the user's role.
    """
    message = 'Your role does not allow this action'
    area = None

    def has_permission(self, request, view):
        area = self.area or getattr(view, 'permission_area', None)
        if area is None:
            return bool(request.user and request.user.is_authenticated)
        if request.method in SAFE_METHODS:
            return can_view(request.user, area)
        return can_edit(request.user, area)


def area_permission(area):
    """Build a permission class bound to one area, for ``@permission_classes``."""
    return type(f'{area.title()}AreaPermission', (RoleAreaPermission,), {'area': area})


class IsAdminRole(BasePermission):
    message = 'Only admins can perform this action'

    def has_permission(self, request, view):
        user = request.user
        return bool(user and user.is_authenticated and (user.is_superuser or user.role == 'admin'))
