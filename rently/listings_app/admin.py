from django.contrib import admin, messages

from listings_app.models import (
    # Listings
    Property,

    # Users / profiles
    UserProfile,

    # Payments
    ContactPurchase,
    PaymentRequest,

    # Notices / moderation
    Notification,
    AuditLog,
)
from listings_app.services import moderation


class ReadOnlyAdmin(admin.ModelAdmin):
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ---------- Actions ----------

@admin.action(description="Approve selected properties (publish + verify)")
def approve_properties(modeladmin, request, queryset):
    count = 0
    for prop in queryset:
        moderation.approve_listing(prop, actor=request.user, ip=request.META.get("REMOTE_ADDR"))
        count += 1
    messages.success(request, f"{count} property(ies) approved.")


@admin.action(description="Mark selected properties as verified")
def verify_properties(modeladmin, request, queryset):
    count = 0
    for prop in queryset:
        moderation.set_verified(prop, verified=True, actor=request.user, ip=request.META.get("REMOTE_ADDR"))
        count += 1
    messages.success(request, f"{count} property(ies) verified.")


# ---------- ModelAdmins ----------

@admin.register(Property)
class PropertyAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "landlord",
        "property_type",
        "price",
        "location",
        "status",
        "verified",
        "created_at",
    )
    list_filter = ("status", "verified", "property_type")
    search_fields = ("title", "location", "landlord__username")
    readonly_fields = ("created_at", "updated_at")
    actions = [approve_properties, verify_properties]


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("user", "full_name", "phone", "role", "created_at")
    list_filter = ("role",)
    search_fields = ("user__username", "user__email", "full_name", "phone")


@admin.register(ContactPurchase)
class ContactPurchaseAdmin(ReadOnlyAdmin):
    list_display = ("id", "user", "property", "amount", "payment_status", "phone", "created_at")
    list_filter = ("payment_status",)
    search_fields = ("user__username", "property__title", "phone")


@admin.register(PaymentRequest)
class PaymentRequestAdmin(ReadOnlyAdmin):
    list_display = ("reference", "user", "property", "amount", "status", "result_code", "created_at")
    list_filter = ("status",)
    search_fields = ("reference", "checkout_request_id", "merchant_request_id", "phone", "user__username")


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ("user", "type", "is_read", "created_at")
    list_filter = ("type", "is_read")
    search_fields = ("user__username", "title")


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ("timestamp", "user", "action", "ip_address")
    list_filter = ("action", "user")
    search_fields = ("user__username", "action", "ip_address")
    readonly_fields = ("timestamp",)
