from django.contrib.auth import get_user_model, password_validation
from django.core.exceptions import ValidationError as DjangoValidationError
from rest_framework import serializers

from listings_app import roles
from listings_app.models import (
    ContactPurchase,
    Notification,
    PaymentRequest,
    Property,
    UserProfile,
)
from listings_app.validators import (
    normalise_msisdn,
    normalise_price,
    sanitize_html_description,
    validate_listing_title,
)

User = get_user_model()


def _django_to_drf(exc: DjangoValidationError) -> serializers.ValidationError:
    return serializers.ValidationError(exc.messages)


class OptionalIntegerField(serializers.IntegerField):
    """Treats "" like null; HTML forms send blanks for untouched inputs."""

    def validate_empty_values(self, data):
        if data == "":
            data = None
        return super().validate_empty_values(data)


# --------------------
# Properties
# --------------------
PROPERTY_FIELDS = [
    "id",
    "title",
    "description",
    "property_type",
    "price",
    "location",
    "bedrooms",
    "bathrooms",
    "area_sqft",
    "images",
    "amenities",
    "status",
    "verified",
    "landlord_id",
    "created_at",
    "updated_at",
]


class PropertySerializer(serializers.ModelSerializer):
    """Catalog card: what anyone browsing may see."""
    landlord_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = Property
        fields = PROPERTY_FIELDS
        read_only_fields = fields


class PropertyDetailSerializer(PropertySerializer):
    """
    Detail view. Landlord phone/email are included only when the context
    says the viewer may see them (`contact_visible`).
    """
    landlord = serializers.SerializerMethodField()
    contact_unlocked = serializers.SerializerMethodField()

    class Meta(PropertySerializer.Meta):
        fields = PROPERTY_FIELDS + ["landlord", "contact_unlocked"]
        read_only_fields = fields

    def get_contact_unlocked(self, obj):
        return bool(self.context.get("contact_visible", False))

    def get_landlord(self, obj):
        landlord = obj.landlord
        profile = getattr(landlord, "profile", None)
        data = {
            "id": landlord.pk,
            "full_name": (getattr(profile, "full_name", "") or landlord.get_full_name() or landlord.username),
        }
        if self.get_contact_unlocked(obj):
            data["phone"] = getattr(profile, "phone", "") or ""
            data["email"] = landlord.email or ""
        return data


class LandlordPropertySerializer(serializers.ModelSerializer):
    """
    Create/edit payload for the owning landlord.

    `status` and `images` are read-only here: status moves through the
    moderation and status endpoints, images through file uploads and
    `existing_images`.
    """
    landlord_id = serializers.IntegerField(read_only=True)
    price = serializers.CharField()
    bedrooms = OptionalIntegerField(min_value=0, required=False, allow_null=True)
    bathrooms = OptionalIntegerField(min_value=0, required=False, allow_null=True)
    area_sqft = OptionalIntegerField(min_value=0, required=False, allow_null=True)
    amenities = serializers.ListField(
        child=serializers.CharField(max_length=60),
        required=False,
    )
    existing_images = serializers.ListField(
        child=serializers.CharField(max_length=500),
        required=False,
        write_only=True,
    )

    class Meta:
        model = Property
        fields = PROPERTY_FIELDS + ["rejection_reason", "existing_images"]
        read_only_fields = [
            "id", "images", "status", "verified", "rejection_reason",
            "landlord_id", "created_at", "updated_at",
        ]
        extra_kwargs = {"property_type": {"required": True}}

    def validate_title(self, value):
        try:
            return validate_listing_title(value)
        except DjangoValidationError as exc:
            raise _django_to_drf(exc)

    def validate_description(self, value):
        try:
            return sanitize_html_description(value)
        except DjangoValidationError as exc:
            raise _django_to_drf(exc)

    def validate_price(self, value):
        try:
            return normalise_price(value)
        except DjangoValidationError as exc:
            raise _django_to_drf(exc)

    def validate_location(self, value):
        value = (value or "").strip()
        if not value:
            raise serializers.ValidationError("Location is required.")
        return value

    def validate_amenities(self, value):
        seen = []
        for item in value:
            item = item.strip()
            if item and item not in seen:
                seen.append(item)
        return seen


class AdminPropertySerializer(serializers.ModelSerializer):
    landlord_id = serializers.IntegerField(read_only=True)
    landlord_name = serializers.SerializerMethodField()

    class Meta:
        model = Property
        fields = PROPERTY_FIELDS + ["rejection_reason", "landlord_name"]
        read_only_fields = fields

    def get_landlord_name(self, obj):
        profile = getattr(obj.landlord, "profile", None)
        return getattr(profile, "full_name", "") or obj.landlord.username


class PropertyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[s.value for s in Property.LANDLORD_STATUSES])


class RejectListingSerializer(serializers.Serializer):
    reason = serializers.CharField(allow_blank=True, trim_whitespace=True, required=False, default="")


class VerifyListingSerializer(serializers.Serializer):
    verified = serializers.BooleanField()


class PlatformStatsSerializer(serializers.Serializer):
    total_properties = serializers.IntegerField()
    total_users = serializers.IntegerField()
    total_revenue = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_approvals = serializers.IntegerField()


# --------------------
# Accounts
# --------------------
class RegistrationSerializer(serializers.ModelSerializer):
    password2 = serializers.CharField(write_only=True, required=False, allow_blank=True)
    full_name = serializers.CharField(max_length=150)
    phone = serializers.CharField(max_length=20, required=False, allow_blank=True)
    # admins are promoted by an existing admin, never self-registered
    role = serializers.ChoiceField(
        choices=[(UserProfile.ROLE_TENANT, "Tenant"), (UserProfile.ROLE_LANDLORD, "Landlord")],
        default=UserProfile.ROLE_TENANT,
    )

    class Meta:
        model = User
        fields = ["username", "email", "password", "password2", "full_name", "phone", "role"]
        extra_kwargs = {
            "password": {"write_only": True},
            "email": {"required": True, "allow_blank": False},
        }

    def validate_email(self, value):
        value = (value or "").strip().lower()
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("This email is already in use.")
        return value

    def validate_phone(self, value):
        if not value:
            return ""
        try:
            return normalise_msisdn(value)
        except DjangoValidationError as exc:
            raise _django_to_drf(exc)

    def validate(self, attrs):
        pw = attrs.get("password") or ""
        pw2 = attrs.get("password2", "")
        if pw2 and pw != pw2:
            raise serializers.ValidationError({"password2": "Passwords must match."})
        try:
            password_validation.validate_password(pw)
        except DjangoValidationError as exc:
            raise serializers.ValidationError({"password": exc.messages})
        return attrs

    def create(self, validated):
        validated.pop("password2", None)
        full_name = validated.pop("full_name").strip()
        phone = validated.pop("phone", "")
        role = validated.pop("role", UserProfile.ROLE_TENANT)
        password = validated.pop("password")

        user = User.objects.create_user(**validated, password=password)

        # the post_save signal has already created (and cached) the profile
        profile = user.profile
        profile.full_name = full_name
        profile.phone = phone
        profile.role = role
        profile.save()
        return user

    def to_representation(self, instance):
        return ProfileSerializer(instance.profile).data


class ProfileSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(source="user_id", read_only=True)
    username = serializers.CharField(source="user.username", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    capabilities = serializers.SerializerMethodField()

    class Meta:
        model = UserProfile
        fields = ["id", "username", "email", "full_name", "phone", "role", "capabilities", "created_at"]
        read_only_fields = ["id", "username", "email", "role", "capabilities", "created_at"]

    def get_capabilities(self, obj):
        return sorted(roles.capabilities_for(obj.user))

    def validate_phone(self, value):
        if not value:
            return ""
        try:
            return normalise_msisdn(value)
        except DjangoValidationError as exc:
            raise _django_to_drf(exc)


# --------------------
# Payments
# --------------------
class ContactPurchaseSerializer(serializers.ModelSerializer):
    property_title = serializers.CharField(source="property.title", read_only=True)
    buyer_name = serializers.SerializerMethodField()

    class Meta:
        model = ContactPurchase
        fields = [
            "id",
            "user",
            "buyer_name",
            "property",
            "property_title",
            "amount",
            "payment_status",
            "phone",
            "created_at",
        ]
        read_only_fields = fields

    def get_buyer_name(self, obj):
        profile = getattr(obj.user, "profile", None)
        return getattr(profile, "full_name", "") or obj.user.username


class PaymentRequestSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentRequest
        fields = [
            "reference",
            "status",
            "property",
            "phone",
            "amount",
            "merchant_request_id",
            "checkout_request_id",
            "result_code",
            "result_desc",
            "created_at",
            "settled_at",
        ]
        read_only_fields = fields


class NotificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = Notification
        fields = [
            "id",
            "type",
            "property",
            "title",
            "body",
            "is_read",
            "created_at",
        ]
        read_only_fields = fields
