from django.urls import path

from listings_app.api.views import (
    # Catalog
    PropertyListView, FeaturedPropertyListView, PropertyDetailView,

    # Landlord listings
    LandlordPropertyListCreateView, LandlordPropertyDetailView, LandlordPropertyStatusView,

    # Moderation
    AdminPropertyListView, AdminPropertyApproveView, AdminPropertyRejectView, AdminPropertyVerifyView,
    AdminStatsView, AdminUserListView, AdminPurchaseListView,

    # Payments
    MpesaStkPushView, MpesaCallbackView,
    PropertyUnlockView, PropertyUnlockSimulateView, PaymentRequestDetailView,

    # Accounts & notifications
    RegistrationView, MeView, NotificationListView, NotificationMarkReadView,

    # Ops
    HealthCheckView,
)

urlpatterns = [
    # Catalog
    path("properties/", PropertyListView.as_view(), name="property-list"),
    path("properties/featured/", FeaturedPropertyListView.as_view(), name="property-featured"),
    path("properties/<int:pk>/", PropertyDetailView.as_view(), name="property-detail"),

    # Contact unlock
    path("properties/<int:pk>/unlock/", PropertyUnlockView.as_view(), name="property-unlock"),
    path("properties/<int:pk>/unlock/simulate/", PropertyUnlockSimulateView.as_view(), name="property-unlock-simulate"),
    path("payments/<uuid:reference>/", PaymentRequestDetailView.as_view(), name="payment-request-detail"),

    # Landlord listings
    path("landlord/properties/", LandlordPropertyListCreateView.as_view(), name="landlord-property-list"),
    path("landlord/properties/<int:pk>/", LandlordPropertyDetailView.as_view(), name="landlord-property-detail"),
    path("landlord/properties/<int:pk>/status/", LandlordPropertyStatusView.as_view(), name="landlord-property-status"),

    # Moderation
    path("admin/properties/", AdminPropertyListView.as_view(), name="admin-property-list"),
    path("admin/properties/<int:pk>/approve/", AdminPropertyApproveView.as_view(), name="admin-property-approve"),
    path("admin/properties/<int:pk>/reject/", AdminPropertyRejectView.as_view(), name="admin-property-reject"),
    path("admin/properties/<int:pk>/verify/", AdminPropertyVerifyView.as_view(), name="admin-property-verify"),
    path("admin/stats/", AdminStatsView.as_view(), name="admin-stats"),
    path("admin/users/", AdminUserListView.as_view(), name="admin-users"),
    path("admin/purchases/", AdminPurchaseListView.as_view(), name="admin-purchases"),

    # M-Pesa
    path("mpesa/stkpush/", MpesaStkPushView.as_view(), name="mpesa-stkpush"),
    path("mpesa/callback/", MpesaCallbackView.as_view(), name="mpesa-callback"),

    # Accounts
    path("auth/register/", RegistrationView.as_view(), name="auth-register"),
    path("users/me/", MeView.as_view(), name="user-me"),

    # Notifications
    path("notifications/", NotificationListView.as_view(), name="notifications-list"),
    path("notifications/<int:pk>/read/", NotificationMarkReadView.as_view(), name="notification-mark-read"),

    # Ops
    path("health/", HealthCheckView.as_view(), name="health"),
]
