"""
Role-based access control for training operations
"""
from rest_framework import permissions

from lms.exceptions import AuthorizationError


def is_privileged(actor):
    """Admins, managers and superadmins may override scores and manage assignments"""
    return bool(actor) and getattr(actor, 'is_privileged', False)


def require_privileged(actor, action='perform this action'):
    if not is_privileged(actor):
        raise AuthorizationError(f'Only admins and managers can {action}.')


def same_organization(actor, organization_id):
    """A missing organization on either side means single-tenant data"""
    if organization_id is None or actor.organization_id is None:
        return True
    return actor.organization_id == organization_id


def require_learner_access(actor, learner):
    """
    Learners act on their own records.
    Privileged actors act on any learner of their organization.
    """
    if actor.id == learner.id:
        return
    if is_privileged(actor) and same_organization(actor, learner.organization_id):
        return
    raise AuthorizationError('You can only access your own training records.')


class IsPrivilegedRole(permissions.BasePermission):
    """Only admin, manager and superadmin roles"""
    message = 'Only admins and managers can perform this action.'

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated) and is_privileged(request.user)
