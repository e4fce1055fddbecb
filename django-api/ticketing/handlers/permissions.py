"""Roles of the authenticated Django user as seen by the ticketing services."""

from rest_framework import permissions

from ticketing.domain.value_objects import Identity, Role

ORGANIZER_GROUP = "organizer"


def role_of(user) -> Role:
    if user.is_staff or user.is_superuser:
        return Role.ADMIN
    if user.groups.filter(name=ORGANIZER_GROUP).exists():
        return Role.ORGANIZER
    return Role.USER


def identity_from_user(user) -> Identity:
    return Identity(user_id=user.pk, role=role_of(user))


class IsOrganizerOrAdmin(permissions.BasePermission):
    """Allow event organizers and administrators."""

    message = "Access denied - organizer or admin role required"

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return role_of(user) in (Role.ORGANIZER, Role.ADMIN)
