import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(blank=True, default="", max_length=150)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("role", models.CharField(
                    choices=[("tenant", "Tenant"), ("landlord", "Landlord"), ("admin", "Admin")],
                    db_index=True, default="tenant", max_length=20,
                )),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="profile", to=settings.AUTH_USER_MODEL,
                )),
            ],
        ),
        migrations.CreateModel(
            name="Property",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=200)),
                ("description", models.TextField()),
                ("property_type", models.CharField(
                    choices=[("rent", "For rent"), ("sale", "For sale")],
                    db_index=True, default="rent", max_length=10,
                )),
                ("price", models.DecimalField(
                    decimal_places=2, max_digits=12,
                    help_text="Price in KSh (per month for rentals).",
                    validators=[django.core.validators.MinValueValidator(Decimal("0.00"))],
                )),
                ("location", models.CharField(max_length=255)),
                ("bedrooms", models.PositiveIntegerField(blank=True, null=True)),
                ("bathrooms", models.PositiveIntegerField(blank=True, null=True)),
                ("area_sqft", models.PositiveIntegerField(blank=True, null=True)),
                ("images", models.JSONField(blank=True, default=list)),
                ("amenities", models.JSONField(blank=True, default=list)),
                ("status", models.CharField(
                    choices=[
                        ("pending_approval", "Pending approval"),
                        ("available", "Available"),
                        ("rejected", "Rejected"),
                        ("rented", "Rented"),
                        ("sold", "Sold"),
                    ],
                    db_index=True, default="pending_approval", max_length=20,
                )),
                ("verified", models.BooleanField(db_index=True, default=False)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("landlord", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="properties", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "verbose_name_plural": "properties",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["landlord", "created_at"], name="listings_ap_landlor_2c1f4e_idx"),
                    models.Index(fields=["status", "created_at"], name="listings_ap_status_8d3b1a_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reference", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("phone", models.CharField(max_length=20)),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("status", models.CharField(
                    choices=[
                        ("initiated", "Initiated"),
                        ("awaiting_callback", "Awaiting callback"),
                        ("settled", "Settled"),
                        ("failed", "Failed"),
                        ("expired", "Expired"),
                    ],
                    db_index=True, default="initiated", max_length=20,
                )),
                ("merchant_request_id", models.CharField(blank=True, default="", max_length=100)),
                ("checkout_request_id", models.CharField(blank=True, db_index=True, default="", max_length=100)),
                ("result_code", models.IntegerField(blank=True, null=True)),
                ("result_desc", models.CharField(blank=True, default="", max_length=255)),
                ("gateway_response", models.JSONField(blank=True, null=True)),
                ("callback_payload", models.JSONField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("settled_at", models.DateTimeField(blank=True, null=True)),
                ("property", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="payment_requests", to="listings_app.property",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="payment_requests", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="listings_ap_status_5e7a90_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ContactPurchase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                ("payment_status", models.CharField(default="completed", max_length=20)),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("payment_request", models.OneToOneField(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    related_name="purchase", to="listings_app.paymentrequest",
                )),
                ("property", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="contact_purchases", to="listings_app.property",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="contact_purchases", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("payment_status", "completed")),
                        fields=("user", "property"),
                        name="uq_completed_purchase_per_user_property",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Notification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("type", models.CharField(
                    choices=[
                        ("listing_approved", "Listing approved"),
                        ("listing_rejected", "Listing rejected"),
                        ("payment_completed", "Payment completed"),
                        ("payment_failed", "Payment failed"),
                    ],
                    max_length=32,
                )),
                ("title", models.CharField(blank=True, default="", max_length=120)),
                ("body", models.TextField(blank=True, default="")),
                ("is_read", models.BooleanField(db_index=True, default=False)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("property", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="notifications", to="listings_app.property",
                )),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE,
                    related_name="notifications", to=settings.AUTH_USER_MODEL,
                )),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "is_read", "created_at"], name="listings_ap_user_id_9b4c2d_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(max_length=200)),
                ("timestamp", models.DateTimeField(auto_now_add=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("extra_data", models.JSONField(blank=True, null=True)),
                ("user", models.ForeignKey(
                    blank=True, null=True,
                    on_delete=django.db.models.deletion.SET_NULL,
                    to=settings.AUTH_USER_MODEL,
                )),
            ],
        ),
    ]
