"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission, SAFE_METHODS

from clinic.models import User

PRESCRIBER_ROLES = {User.ROLE_ADMIN, User.ROLE_DOCTOR}
CLINICAL_ROLES = {User.ROLE_ADMIN, User.ROLE_DOCTOR, User.ROLE_NURSE}
PHARMACY_ROLES = {User.ROLE_ADMIN, User.ROLE_PHARMACIST}
FRONT_DESK_ROLES = {User.ROLE_ADMIN, User.ROLE_DOCTOR, User.ROLE_NURSE, User.ROLE_RECEPTIONIST}


def _has_role(request, roles) -> bool:
    user = getattr(request, "user", None)
    return bool(user and user.is_authenticated and getattr(user, "role", None) in roles)


class RoleOrReadOnly(BasePermission):
    """Any signed-in user may read; writes need one of ``roles``."""
    roles = frozenset()

    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        if request.method in SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return _has_role(request, self.roles)


class CanPrescribe(RoleOrReadOnly):
    """Doctors and admins may write prescriptions and diagnoses."""
    roles = PRESCRIBER_ROLES


class IsClinicalStaffOrReadOnly(RoleOrReadOnly):
    roles = CLINICAL_ROLES


class IsPharmacyStaff(BasePermission):
    """Stock, dispensing and finance are limited to pharmacists and admins."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _has_role(request, PHARMACY_ROLES)


class IsPharmacyStaffOrReadOnly(RoleOrReadOnly):
    roles = PHARMACY_ROLES


class IsFrontDeskOrReadOnly(RoleOrReadOnly):
    """Patient registration: everyone except pharmacy-only staff."""
    roles = FRONT_DESK_ROLES
