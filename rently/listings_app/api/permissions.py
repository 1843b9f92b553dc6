from rest_framework import permissions

from listings_app import roles


class HasCapability(permissions.BasePermission):
    """Grant access when the signed-in user's role carries `capability`."""
    capability = None
    message = "You do not have permission to perform this action."

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return roles.has_capability(user, self.capability)


class IsLandlord(HasCapability):
    capability = roles.MANAGE_OWN_LISTINGS
    message = "This page is only for landlords."


class IsPlatformAdmin(HasCapability):
    capability = roles.MODERATE_LISTINGS
    message = "This page is only for administrators."


class IsListingOwner(permissions.BasePermission):
    """Write access only for the landlord who owns the listing."""
    message = "You can only manage your own listings."

    def has_object_permission(self, request, view, obj):
        owner_id = getattr(obj, "landlord_id", None)
        return owner_id is not None and owner_id == request.user.id
