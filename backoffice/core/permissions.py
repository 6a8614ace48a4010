"""
Role checks for back-office operations.

Roles are Django auth groups created by the ``create_user_groups`` command.
Superusers pass every check.
"""
ADMIN = 'Admin'
MANAGER = 'Manager'
STAFF = 'Staff'

ALL_ROLES = [ADMIN, MANAGER, STAFF]
INVENTORY_WRITE_ROLES = [ADMIN, MANAGER]
INVENTORY_READ_ROLES = [ADMIN, MANAGER, STAFF]


def user_has_role(user, roles):
    """Return True when the user belongs to at least one of the given groups"""
    if not user or not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return user.groups.filter(name__in=roles).exists()


def get_user_roles(user):
    if not user or not user.is_authenticated:
        return []
    return list(user.groups.filter(name__in=ALL_ROLES).values_list('name', flat=True))
