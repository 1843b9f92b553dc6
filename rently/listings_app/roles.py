"""
Role -> capability lookup.

Every access decision goes through `has_capability`, which reads the one
role field on `UserProfile`. Views never compare role strings directly.
"""
from listings_app.models import UserProfile

BROWSE_CATALOG = "browse_catalog"
UNLOCK_CONTACTS = "unlock_contacts"
MANAGE_OWN_LISTINGS = "manage_own_listings"
MODERATE_LISTINGS = "moderate_listings"
VIEW_PLATFORM_STATS = "view_platform_stats"
VIEW_ANY_CONTACT = "view_any_contact"

ROLE_CAPABILITIES = {
    UserProfile.ROLE_TENANT: frozenset({
        BROWSE_CATALOG,
        UNLOCK_CONTACTS,
    }),
    UserProfile.ROLE_LANDLORD: frozenset({
        BROWSE_CATALOG,
        UNLOCK_CONTACTS,
        MANAGE_OWN_LISTINGS,
    }),
    UserProfile.ROLE_ADMIN: frozenset({
        BROWSE_CATALOG,
        UNLOCK_CONTACTS,
        MODERATE_LISTINGS,
        VIEW_PLATFORM_STATS,
        VIEW_ANY_CONTACT,
    }),
}


def role_for(user) -> str:
    """Role of `user`; anonymous users and users without a profile are tenants."""
    if user is None or not getattr(user, "is_authenticated", False):
        return UserProfile.ROLE_TENANT
    try:
        profile = user.profile
    except UserProfile.DoesNotExist:
        return UserProfile.ROLE_TENANT
    return profile.role or UserProfile.ROLE_TENANT


def capabilities_for(user) -> frozenset:
    if user is None or not getattr(user, "is_authenticated", False):
        return frozenset({BROWSE_CATALOG})
    return ROLE_CAPABILITIES.get(role_for(user), ROLE_CAPABILITIES[UserProfile.ROLE_TENANT])


def has_capability(user, capability: str) -> bool:
    return capability in capabilities_for(user)
