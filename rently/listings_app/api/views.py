import logging

from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import connection, DatabaseError
from django.db.models import Q
from django.http import Http404
from django.shortcuts import get_object_or_404

from django_filters.rest_framework import DjangoFilterBackend

from rest_framework import generics, status
from rest_framework.exceptions import ParseError, ValidationError
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

# Models
from listings_app.models import (
    ContactPurchase,
    Notification,
    PaymentRequest,
    Property,
    UserProfile,
)
from listings_app import roles

# Services
from listings_app.services import listings as listing_service
from listings_app.services import moderation
from listings_app.services import mpesa
from listings_app.services import payments

# Validators / helpers
from listings_app.validators import (
    assert_no_duplicate_files,
    parse_price_bracket,
    sanitize_search_text,
    validate_listing_photos,
)

# API plumbing
from listings_app.api.exceptions import APIError
from listings_app.api.permissions import IsLandlord, IsListingOwner, IsPlatformAdmin
from listings_app.api.serializers import (
    AdminPropertySerializer,
    ContactPurchaseSerializer,
    LandlordPropertySerializer,
    NotificationSerializer,
    PaymentRequestSerializer,
    PlatformStatsSerializer,
    ProfileSerializer,
    PropertyDetailSerializer,
    PropertySerializer,
    PropertyStatusSerializer,
    RegistrationSerializer,
    RejectListingSerializer,
    VerifyListingSerializer,
)
from listings_app.api.throttling import (
    MpesaCallbackThrottle,
    PaymentInitiateThrottle,
    RegisterScopedThrottle,
)

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6


def _client_ip(request):
    return request.META.get("REMOTE_ADDR")


def _uploaded_images(request):
    """Validated list of files posted under `images` (may be empty)."""
    files = request.FILES.getlist("images") if hasattr(request, "FILES") else []
    try:
        files = validate_listing_photos(files)
        assert_no_duplicate_files(files)
    except DjangoValidationError as exc:
        raise ValidationError({"images": exc.messages})
    return files


def _with_upload_errors(data, errors):
    data = dict(data)
    data["image_upload_errors"] = errors
    return data


# --------------------
# Catalog
# --------------------
class PropertyListView(generics.ListAPIView):
    """
    GET /api/properties/?search=&type=&price=

    Available listings only, newest first, unpaginated. Filters combine
    with AND; "all" or empty disables `type` and `price`.
    """
    serializer_class = PropertySerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        params = self.request.query_params
        qs = Property.objects.available().order_by("-created_at")

        search = sanitize_search_text(params.get("search", ""))
        if search:
            qs = qs.filter(
                Q(title__icontains=search)
                | Q(location__icontains=search)
                | Q(description__icontains=search)
            )

        ptype = (params.get("type") or "").strip().lower()
        if ptype and ptype != "all":
            qs = qs.filter(property_type=ptype)

        try:
            bounds = parse_price_bracket(params.get("price", ""))
        except DjangoValidationError as exc:
            raise ValidationError({"price": exc.messages})
        if bounds is not None:
            low, high = bounds
            qs = qs.filter(price__gte=low)
            if high is not None:
                qs = qs.filter(price__lte=high)

        return qs


class FeaturedPropertyListView(generics.ListAPIView):
    serializer_class = PropertySerializer
    permission_classes = [AllowAny]
    pagination_class = None

    def get_queryset(self):
        return Property.objects.available().order_by("-created_at")[:FEATURED_LIMIT]


class PropertyDetailView(APIView):
    """
    GET /api/properties/<id>/

    Non-available listings are visible to their owner and to admins only.
    Landlord phone/email appear once the viewer has unlocked them.
    """
    permission_classes = [AllowAny]

    def get(self, request, pk):
        prop = get_object_or_404(Property.objects.select_related("landlord__profile"), pk=pk)
        user = request.user
        is_owner = user.is_authenticated and prop.landlord_id == user.id

        if prop.status != Property.Status.AVAILABLE:
            if not (is_owner or roles.has_capability(user, roles.MODERATE_LISTINGS)):
                raise Http404

        contact_visible = (
            is_owner
            or roles.has_capability(user, roles.VIEW_ANY_CONTACT)
            or payments.has_unlocked(user, prop)
        )
        ser = PropertyDetailSerializer(
            prop,
            context={"request": request, "contact_visible": contact_visible},
        )
        return Response(ser.data)


# --------------------
# Landlord listings
# --------------------
class LandlordPropertyListCreateView(APIView):
    permission_classes = [IsLandlord]
    parser_classes = [JSONParser, MultiPartParser, FormParser]

    def get(self, request):
        qs = Property.objects.owned_by(request.user).order_by("-created_at")
        return Response(LandlordPropertySerializer(qs, many=True).data)

    def post(self, request):
        """
        POST /api/landlord/properties/

        Any client-supplied status is ignored; new listings always wait
        for admin approval.
        """
        files = _uploaded_images(request)
        ser = LandlordPropertySerializer(data=request.data, context={"request": request})
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        data.pop("existing_images", None)
        prop, errors = listing_service.create_listing(landlord=request.user, data=data, files=files)

        out = LandlordPropertySerializer(prop).data
        return Response(_with_upload_errors(out, errors), status=status.HTTP_201_CREATED)


class LandlordPropertyDetailView(APIView):
    permission_classes = [IsLandlord, IsListingOwner]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    http_method_names = ["get", "put", "patch", "delete"]

    def _owned(self, request, pk):
        prop = get_object_or_404(Property, pk=pk)
        self.check_object_permissions(request, prop)
        return prop

    def get(self, request, pk):
        prop = get_object_or_404(Property.objects.owned_by(request.user), pk=pk)
        return Response(LandlordPropertySerializer(prop).data)

    def _update(self, request, pk, partial):
        prop = self._owned(request, pk)
        files = _uploaded_images(request)

        ser = LandlordPropertySerializer(prop, data=request.data, partial=partial, context={"request": request})
        ser.is_valid(raise_exception=True)

        data = dict(ser.validated_data)
        existing = data.pop("existing_images", None)
        prop, errors = listing_service.update_listing(prop, data=data, files=files, existing_images=existing)

        prop.refresh_from_db()
        return Response(_with_upload_errors(LandlordPropertySerializer(prop).data, errors))

    def put(self, request, pk):
        return self._update(request, pk, partial=False)

    def patch(self, request, pk):
        return self._update(request, pk, partial=True)

    def delete(self, request, pk):
        prop = self._owned(request, pk)
        listing_service.delete_listing(prop)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LandlordPropertyStatusView(APIView):
    """
    POST /api/landlord/properties/<id>/status/
    Body: {"status": "available"|"rented"|"sold"}, approved listings only.
    """
    permission_classes = [IsLandlord, IsListingOwner]

    def post(self, request, pk):
        prop = get_object_or_404(Property, pk=pk)
        self.check_object_permissions(request, prop)

        ser = PropertyStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            listing_service.change_listing_status(prop, ser.validated_data["status"])
        except DjangoValidationError as exc:
            raise ValidationError({"status": exc.messages})

        prop.refresh_from_db()
        return Response(LandlordPropertySerializer(prop).data)


# --------------------
# Moderation (admin)
# --------------------
class AdminPropertyListView(generics.ListAPIView):
    serializer_class = AdminPropertySerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = None
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ["status", "verified", "property_type"]

    def get_queryset(self):
        return Property.objects.select_related("landlord__profile").order_by("-created_at")


class AdminPropertyApproveView(APIView):
    permission_classes = [IsPlatformAdmin]

    def post(self, request, pk):
        prop = get_object_or_404(Property, pk=pk)
        moderation.approve_listing(prop, actor=request.user, ip=_client_ip(request))
        prop.refresh_from_db()
        return Response(AdminPropertySerializer(prop).data)


class AdminPropertyRejectView(APIView):
    """
    POST /api/admin/properties/<id>/reject/
    Body: {"reason": "..."}; a blank reason is refused and nothing changes.
    """
    permission_classes = [IsPlatformAdmin]

    def post(self, request, pk):
        prop = get_object_or_404(Property, pk=pk)
        ser = RejectListingSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        try:
            moderation.reject_listing(
                prop,
                reason=ser.validated_data.get("reason", ""),
                actor=request.user,
                ip=_client_ip(request),
            )
        except DjangoValidationError as exc:
            raise ValidationError({"reason": exc.messages})

        prop.refresh_from_db()
        return Response(AdminPropertySerializer(prop).data)


class AdminPropertyVerifyView(APIView):
    permission_classes = [IsPlatformAdmin]

    def post(self, request, pk):
        prop = get_object_or_404(Property, pk=pk)
        ser = VerifyListingSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        moderation.set_verified(
            prop,
            verified=ser.validated_data["verified"],
            actor=request.user,
            ip=_client_ip(request),
        )
        prop.refresh_from_db()
        return Response(AdminPropertySerializer(prop).data)


class AdminStatsView(APIView):
    permission_classes = [IsPlatformAdmin]

    def get(self, request):
        return Response(PlatformStatsSerializer(moderation.platform_stats()).data)


class AdminUserListView(generics.ListAPIView):
    serializer_class = ProfileSerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = None

    def get_queryset(self):
        return UserProfile.objects.select_related("user").order_by("-created_at")


class AdminPurchaseListView(generics.ListAPIView):
    serializer_class = ContactPurchaseSerializer
    permission_classes = [IsPlatformAdmin]
    pagination_class = None

    def get_queryset(self):
        return (
            ContactPurchase.objects
            .select_related("property", "user__profile")
            .order_by("-created_at")
        )


# --------------------
# Payments (M-Pesa)
# --------------------
def _stk_push_response(request, *, phone, amount, prop=None):
    """Run one STK push and shape the {error, details?} contract on failure."""
    try:
        payment, payload = payments.start_payment(user=request.user, phone=phone, amount=amount, prop=prop)
    except DjangoValidationError as exc:
        return Response({"error": exc.messages[0]}, status=status.HTTP_400_BAD_REQUEST)
    except mpesa.MpesaConfigurationError as exc:
        logger.error("STK push refused: %s", exc.message)
        return Response({"error": exc.message}, status=status.HTTP_500_INTERNAL_SERVER_ERROR)
    except mpesa.MpesaError as exc:
        body = {"error": exc.message}
        if exc.details is not None:
            body["details"] = exc.details
        return Response(body, status=status.HTTP_500_INTERNAL_SERVER_ERROR)

    data = dict(payload)
    data["reference"] = str(payment.reference)
    data["status"] = payment.status
    return Response(data, status=status.HTTP_200_OK)


class MpesaStkPushView(APIView):
    """
    POST /api/mpesa/stkpush/
    Body: {"phone": "07XXXXXXXX", "amount": 200, "property": <id>?}
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [PaymentInitiateThrottle]

    def post(self, request):
        phone = request.data.get("phone")
        amount = request.data.get("amount")
        if phone in (None, "") or amount in (None, ""):
            return Response(
                {"error": "Phone number and amount are required."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        prop = None
        property_id = request.data.get("property")
        if property_id not in (None, ""):
            try:
                prop = Property.objects.available().filter(pk=int(property_id)).first()
            except (TypeError, ValueError):
                prop = None
            if prop is None:
                return Response(
                    {"error": "Property not found or not available."},
                    status=status.HTTP_400_BAD_REQUEST,
                )

        return _stk_push_response(request, phone=phone, amount=amount, prop=prop)


class MpesaCallbackView(APIView):
    """
    POST /api/mpesa/callback/?ref=<reference>&token=<hmac>

    Called by Safaricom. Always answers {"success": true} once the token
    checks out, whatever the body says.
    """
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [MpesaCallbackThrottle]

    def post(self, request):
        reference = request.query_params.get("ref", "")
        token = request.query_params.get("token", "")

        try:
            payload = request.data
        except ParseError:
            logger.warning("M-Pesa callback body for %s is not valid JSON", reference)
            payload = None

        try:
            payments.handle_callback(reference=reference, token=token, payload=payload)
        except DjangoValidationError as exc:
            logger.warning("Rejected M-Pesa callback for ref=%r: %s", reference, exc.messages[0])
            return Response(
                {"success": False, "error": "Invalid callback token."},
                status=status.HTTP_403_FORBIDDEN,
            )
        return Response({"success": True})


class PropertyUnlockView(APIView):
    """
    POST /api/properties/<id>/unlock/
    Body: {"phone": "07XXXXXXXX"}; charges CONTACT_UNLOCK_FEE over STK push.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [PaymentInitiateThrottle]

    def post(self, request, pk):
        prop = get_object_or_404(Property.objects.available(), pk=pk)
        if payments.has_unlocked(request.user, prop):
            raise APIError("You have already unlocked this contact.", code="already_unlocked",
                           status_code=status.HTTP_409_CONFLICT)
        if payments.pending_unlock(request.user, prop) is not None:
            raise APIError("A payment for this contact is already in progress. Check your phone.",
                           code="payment_pending", status_code=status.HTTP_409_CONFLICT)

        phone = request.data.get("phone") or getattr(getattr(request.user, "profile", None), "phone", "")
        if not phone:
            return Response({"error": "Phone number is required."}, status=status.HTTP_400_BAD_REQUEST)

        return _stk_push_response(request, phone=phone, amount=payments.unlock_fee(), prop=prop)


class PropertyUnlockSimulateView(APIView):
    """Sandbox shortcut: record a completed purchase without calling M-Pesa."""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        if not getattr(settings, "MPESA_SIMULATE_PAYMENTS", False):
            raise Http404
        prop = get_object_or_404(Property.objects.available(), pk=pk)
        purchase = payments.simulate_purchase(user=request.user, prop=prop)
        if purchase is None:
            raise APIError("You have already unlocked this contact.", code="already_unlocked",
                           status_code=status.HTTP_409_CONFLICT)
        return Response(ContactPurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


class PaymentRequestDetailView(generics.RetrieveAPIView):
    serializer_class = PaymentRequestSerializer
    permission_classes = [IsAuthenticated]
    lookup_field = "reference"

    def get_queryset(self):
        return PaymentRequest.objects.filter(user=self.request.user)


# --------------------
# Auth / Profile
# --------------------
class RegistrationView(generics.CreateAPIView):
    serializer_class = RegistrationSerializer
    permission_classes = [AllowAny]
    throttle_classes = [RegisterScopedThrottle]


class MeView(generics.RetrieveUpdateAPIView):
    serializer_class = ProfileSerializer
    permission_classes = [IsAuthenticated]
    http_method_names = ["get", "patch"]

    def get_object(self):
        profile, _ = UserProfile.objects.select_related("user").get_or_create(user=self.request.user)
        return profile


class NotificationListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        qs = Notification.objects.filter(user=request.user).order_by("is_read", "-created_at")
        data = NotificationSerializer(qs, many=True).data
        return Response(data, status=status.HTTP_200_OK)


class NotificationMarkReadView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request, pk: int):
        notif = get_object_or_404(Notification, pk=pk, user=request.user)
        if not notif.is_read:
            notif.is_read = True
            notif.save(update_fields=["is_read"])
        return Response({"ok": True}, status=status.HTTP_200_OK)


class HealthCheckView(APIView):
    permission_classes = [AllowAny]

    def get(self, request):
        # Minimal DB ping (read-only, fast)
        try:
            with connection.cursor() as cur:
                cur.execute("SELECT 1")
            db_ok = True
        except DatabaseError:
            logger.exception("Health check database ping failed")
            db_ok = False
        return Response({"status": "ok", "db": db_ok}, status=status.HTTP_200_OK)
