"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission

CLINICAL_ROLES = {"doctor", "admin"}


class IsAdminRole(BasePermission):
    """Allow access only to users with the admin role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) == "admin")


class IsClinicalRole(BasePermission):
    """Doctors and admins."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in CLINICAL_ROLES)


def can_view_patient(user, patient_id: int) -> bool:
    """Patients see their own records; doctors and admins see everyone's."""
    if not (user and user.is_authenticated):
        return False
    role = getattr(user, "role", None)
    if role in CLINICAL_ROLES:
        return True
    return role == "patient" and user.id == patient_id
