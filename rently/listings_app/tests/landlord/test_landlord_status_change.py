import pytest

from listings_app.models import Property

pytestmark = pytest.mark.django_db


def _url(prop):
    return f"/api/landlord/properties/{prop.id}/status/"


@pytest.mark.parametrize("target", ["rented", "sold", "available"])
def test_approved_listing_moves_freely_between_landlord_statuses(landlord, landlord_client, property_factory, target):
    prop = property_factory(landlord=landlord, status=Property.Status.RENTED)

    res = landlord_client.post(_url(prop), {"status": target}, format="json")
    assert res.status_code == 200, res.data
    assert res.data["status"] == target


@pytest.mark.parametrize("current", [Property.Status.PENDING_APPROVAL, Property.Status.REJECTED])
def test_status_change_refused_before_approval(landlord, landlord_client, property_factory, current):
    prop = property_factory(landlord=landlord, status=current)

    res = landlord_client.post(_url(prop), {"status": "available"}, format="json")
    assert res.status_code == 400
    assert res.data["code"] == "validation_error"

    prop.refresh_from_db()
    assert prop.status == current


def test_landlord_cannot_self_publish_or_reject(landlord, landlord_client, property_factory):
    prop = property_factory(landlord=landlord, status=Property.Status.AVAILABLE)

    for bad in ("pending_approval", "rejected", "deleted"):
        res = landlord_client.post(_url(prop), {"status": bad}, format="json")
        assert res.status_code == 400, bad


def test_only_owner_may_change_status(user_factory, landlord_client, property_factory):
    other = user_factory(username="otto", role="landlord")
    prop = property_factory(landlord=other)

    res = landlord_client.post(_url(prop), {"status": "sold"}, format="json")
    assert res.status_code == 403
    prop.refresh_from_db()
    assert prop.status == Property.Status.AVAILABLE
