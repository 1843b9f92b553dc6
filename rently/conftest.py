# rently/conftest.py
import os
import uuid

import pytest
from django.core.cache import cache
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from listings_app.models import Property, UserProfile


@pytest.fixture(autouse=True)
def clear_cache_between_tests(settings):
    # Make sure throttle counters don't leak across tests
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def unique_cache_location_for_session(settings):
    """
    Ensure this test session uses a unique LocMem cache 'LOCATION'
    so it doesn't reuse a stale cache namespace from any prior run.
    """
    caches = settings.CACHES.copy()
    default = caches.get("default", {}).copy()
    default["LOCATION"] = f"pytest-cache-{os.getpid()}-{uuid.uuid4()}"
    caches["default"] = default
    settings.CACHES = caches


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def user_factory(db):
    """
    Usage:
      u = user_factory()
      landlord = user_factory(username="lucy", role="landlord", phone="254712345678")
    """
    User = get_user_model()

    def make_user(
        *,
        username=None,
        email=None,
        password="Pass12345!",
        role=UserProfile.ROLE_TENANT,
        full_name="",
        phone="",
        **extra,
    ):
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        if email is None:
            email = f"{username}@example.com"

        u = User.objects.create_user(username=username, email=email, password=password, **extra)

        profile = u.profile
        profile.role = role
        profile.full_name = full_name or username.title()
        profile.phone = phone
        profile.save()
        return u

    return make_user


@pytest.fixture
def tenant(user_factory):
    return user_factory(username="tina", role=UserProfile.ROLE_TENANT, phone="254700000001")


@pytest.fixture
def landlord(user_factory):
    return user_factory(
        username="larry",
        role=UserProfile.ROLE_LANDLORD,
        full_name="Larry Landlord",
        phone="254712345678",
    )


@pytest.fixture
def platform_admin(user_factory):
    return user_factory(username="ada", role=UserProfile.ROLE_ADMIN)


def _client_for(user):
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture
def tenant_client(tenant):
    return _client_for(tenant)


@pytest.fixture
def landlord_client(landlord):
    return _client_for(landlord)


@pytest.fixture
def platform_admin_client(platform_admin):
    return _client_for(platform_admin)


@pytest.fixture
def property_factory(db, user_factory):
    """
    Usage:
      prop = property_factory()
      pending = property_factory(landlord=me, status="pending_approval", price="45000")
    """
    def make_property(
        *,
        landlord=None,
        title="Two bedroom apartment",
        description="Bright flat close to the shops.",
        property_type=Property.PropertyType.RENT,
        price="45000.00",
        location="Kilimani, Nairobi",
        status=Property.Status.AVAILABLE,
        **overrides,
    ):
        if landlord is None:
            landlord = user_factory(role=UserProfile.ROLE_LANDLORD, phone="254711111111")

        return Property.objects.create(
            landlord=landlord,
            title=title,
            description=description,
            property_type=property_type,
            price=price,
            location=location,
            status=status,
            **overrides,
        )

    return make_property
