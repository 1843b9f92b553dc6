from decimal import Decimal
from uuid import uuid4

from django.contrib.auth.models import User
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


# -----------
# UserProfile
# -----------
class UserProfile(models.Model):
    """
    The single authoritative role record for a user.

    Landlord gating and admin gating both read `role`; there is no second
    role table. See `listings_app.roles` for the capability lookup.
    """
    ROLE_TENANT = "tenant"
    ROLE_LANDLORD = "landlord"
    ROLE_ADMIN = "admin"
    ROLE_CHOICES = (
        (ROLE_TENANT, "Tenant"),
        (ROLE_LANDLORD, "Landlord"),
        (ROLE_ADMIN, "Admin"),
    )

    user = models.OneToOneField(
        User,
        on_delete=models.CASCADE,
        related_name="profile",
    )
    full_name = models.CharField(max_length=150, blank=True, default="")
    phone = models.CharField(max_length=20, blank=True, default="")
    role = models.CharField(
        max_length=20,
        choices=ROLE_CHOICES,
        default=ROLE_TENANT,
        db_index=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    @property
    def email(self):
        return self.user.email

    def __str__(self):
        return f"{self.user.username} profile ({self.role})"


# --------
# Property
# --------
class PropertyQuerySet(models.QuerySet):
    def available(self):
        return self.filter(status=Property.Status.AVAILABLE)

    def owned_by(self, user):
        return self.filter(landlord=user)

    def pending(self):
        return self.filter(status=Property.Status.PENDING_APPROVAL)


class Property(models.Model):
    class PropertyType(models.TextChoices):
        RENT = "rent", "For rent"
        SALE = "sale", "For sale"

    class Status(models.TextChoices):
        PENDING_APPROVAL = "pending_approval", "Pending approval"
        AVAILABLE = "available", "Available"
        REJECTED = "rejected", "Rejected"
        RENTED = "rented", "Rented"
        SOLD = "sold", "Sold"

    # statuses a landlord may move between once an admin has approved the listing
    LANDLORD_STATUSES = (Status.AVAILABLE, Status.RENTED, Status.SOLD)

    title = models.CharField(max_length=200)
    description = models.TextField()
    property_type = models.CharField(
        max_length=10,
        choices=PropertyType.choices,
        default=PropertyType.RENT,
        db_index=True,
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
        help_text="Price in KSh (per month for rentals).",
    )
    location = models.CharField(max_length=255)
    bedrooms = models.PositiveIntegerField(null=True, blank=True)
    bathrooms = models.PositiveIntegerField(null=True, blank=True)
    area_sqft = models.PositiveIntegerField(null=True, blank=True)

    images = models.JSONField(default=list, blank=True)     # ordered public URLs
    amenities = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.PENDING_APPROVAL,
        db_index=True,
    )
    verified = models.BooleanField(default=False, db_index=True)
    rejection_reason = models.TextField(null=True, blank=True)

    landlord = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="properties",
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = PropertyQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name_plural = "properties"
        indexes = [
            models.Index(fields=["landlord", "created_at"], name="listings_ap_landlor_2c1f4e_idx"),
            models.Index(fields=["status", "created_at"], name="listings_ap_status_8d3b1a_idx"),
        ]

    def __str__(self):
        return self.title

    @property
    def is_approved(self):
        return self.status in self.LANDLORD_STATUSES


# ---------------
# ContactPurchase
# ---------------
class ContactPurchase(models.Model):
    STATUS_COMPLETED = "completed"

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="contact_purchases",
    )
    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        related_name="contact_purchases",
    )
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    payment_status = models.CharField(max_length=20, default=STATUS_COMPLETED)
    phone = models.CharField(max_length=20, null=True, blank=True)
    payment_request = models.OneToOneField(
        "PaymentRequest",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="purchase",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "property"],
                condition=Q(payment_status="completed"),
                name="uq_completed_purchase_per_user_property",
            ),
        ]

    def __str__(self):
        who = getattr(self.user, "username", self.user_id)
        return f"Purchase {self.pk} {self.amount} by {who} for property {self.property_id}"


# --------------
# PaymentRequest
# --------------
class PaymentRequest(models.Model):
    """One STK push attempt, from initiation until the gateway callback settles it."""

    class Status(models.TextChoices):
        INITIATED = "initiated", "Initiated"
        AWAITING_CALLBACK = "awaiting_callback", "Awaiting callback"
        SETTLED = "settled", "Settled"
        FAILED = "failed", "Failed"
        EXPIRED = "expired", "Expired"

    reference = models.UUIDField(default=uuid4, unique=True, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="payment_requests",
    )
    property = models.ForeignKey(
        Property,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_requests",
    )
    phone = models.CharField(max_length=20)
    amount = models.DecimalField(max_digits=10, decimal_places=2)

    status = models.CharField(
        max_length=20,
        choices=Status.choices,
        default=Status.INITIATED,
        db_index=True,
    )
    merchant_request_id = models.CharField(max_length=100, blank=True, default="")
    checkout_request_id = models.CharField(max_length=100, blank=True, default="", db_index=True)
    result_code = models.IntegerField(null=True, blank=True)
    result_desc = models.CharField(max_length=255, blank=True, default="")
    gateway_response = models.JSONField(null=True, blank=True)
    callback_payload = models.JSONField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    settled_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="listings_ap_status_5e7a90_idx"),
        ]

    def __str__(self):
        return f"PaymentRequest {self.reference} {self.amount} [{self.status}]"


# ------------
# Notification
# ------------
class Notification(models.Model):
    TYPE_CHOICES = (
        ("listing_approved", "Listing approved"),
        ("listing_rejected", "Listing rejected"),
        ("payment_completed", "Payment completed"),
        ("payment_failed", "Payment failed"),
    )

    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=32, choices=TYPE_CHOICES)
    property = models.ForeignKey(
        Property,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="notifications",
    )
    title = models.CharField(max_length=120, blank=True, default="")
    body = models.TextField(blank=True, default="")
    is_read = models.BooleanField(default=False, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "is_read", "created_at"], name="listings_ap_user_id_9b4c2d_idx"),
        ]

    def __str__(self):
        return f"Notif#{self.pk} to {getattr(self.user, 'username', self.user_id)} [{self.type}]"


# --------
# AuditLog
# --------
class AuditLog(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=200)
    timestamp = models.DateTimeField(auto_now_add=True)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    extra_data = models.JSONField(null=True, blank=True)

    def __str__(self):
        return f"{self.timestamp} - {self.user} - {self.action}"
