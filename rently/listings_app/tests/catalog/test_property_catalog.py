from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from listings_app.models import Property
from listings_app.validators import PRICE_BRACKETS, parse_price_bracket, price_in_bracket

pytestmark = pytest.mark.django_db

LIST_URL = "/api/properties/"


def _ids(res):
    return [row["id"] for row in res.data]


def _age(prop, minutes):
    """Backdate created_at so ordering is deterministic."""
    Property.objects.filter(pk=prop.pk).update(created_at=timezone.now() - timedelta(minutes=minutes))


def test_catalog_lists_only_available_newest_first(api_client, property_factory):
    old = property_factory(title="Old flat")
    new = property_factory(title="New flat")
    _age(old, 30)
    _age(new, 5)
    property_factory(title="Pending", status=Property.Status.PENDING_APPROVAL)
    property_factory(title="Rejected", status=Property.Status.REJECTED)
    property_factory(title="Rented", status=Property.Status.RENTED)

    res = api_client.get(LIST_URL)
    assert res.status_code == 200
    assert _ids(res) == [new.id, old.id]


def test_catalog_is_mounted_under_v1_too(api_client, property_factory):
    prop = property_factory()
    res = api_client.get("/api/v1/properties/")
    assert res.status_code == 200
    assert _ids(res) == [prop.id]


def test_search_matches_title_location_or_description_case_insensitively(api_client, property_factory):
    by_title = property_factory(title="Westlands Penthouse", location="Nairobi", description="views")
    by_location = property_factory(title="Bungalow", location="westlands road", description="garden")
    by_description = property_factory(title="Studio", location="CBD", description="Walk to WESTLANDS mall")
    property_factory(title="Cottage", location="Karen", description="quiet")

    res = api_client.get(LIST_URL, {"search": "Westlands"})
    assert res.status_code == 200
    assert set(_ids(res)) == {by_title.id, by_location.id, by_description.id}


def test_type_filter_and_all(api_client, property_factory):
    rent = property_factory(property_type="rent")
    sale = property_factory(property_type="sale")

    assert _ids(api_client.get(LIST_URL, {"type": "sale"})) == [sale.id]
    assert _ids(api_client.get(LIST_URL, {"type": "rent"})) == [rent.id]
    assert set(_ids(api_client.get(LIST_URL, {"type": "all"}))) == {rent.id, sale.id}


def test_filters_compose_with_and(api_client, property_factory):
    match = property_factory(title="Kileleshwa flat", property_type="rent", price="60000")
    property_factory(title="Kileleshwa house", property_type="sale", price="60000")
    property_factory(title="Kileleshwa bedsitter", property_type="rent", price="20000")

    res = api_client.get(LIST_URL, {"search": "kileleshwa", "type": "rent", "price": "50000-100000"})
    assert _ids(res) == [match.id]


def test_price_bracket_bounds_are_inclusive(api_client, property_factory):
    at_low = property_factory(price="50000.00")
    at_high = property_factory(price="100000.00")
    property_factory(price="49999.99")
    property_factory(price="100000.01")

    res = api_client.get(LIST_URL, {"price": "50000-100000"})
    assert set(_ids(res)) == {at_low.id, at_high.id}


def test_open_ended_bracket_includes_everything_above_lower_bound(api_client, property_factory):
    at_floor = property_factory(price="500000")
    huge = property_factory(price="987654321")
    property_factory(price="499999")

    res = api_client.get(LIST_URL, {"price": "500000"})
    assert set(_ids(res)) == {at_floor.id, huge.id}


@pytest.mark.parametrize("token", ["cheap", "nan", "snan", "inf", "1-nan", "100-infinity"])
def test_malformed_price_token_is_a_validation_error(api_client, property_factory, token):
    property_factory()
    res = api_client.get(LIST_URL, {"price": token})
    assert res.status_code == 400
    assert res.data["code"] == "validation_error"
    assert "price" in res.data["field_errors"]


def test_every_known_bracket_agrees_with_the_filter(api_client, property_factory):
    prices = ["0", "25000", "50000", "75000", "100000", "150000", "200000", "350000", "500000", "2500000"]
    props = {p: property_factory(price=p) for p in prices}

    for token, _label in PRICE_BRACKETS:
        bounds = parse_price_bracket(token)
        expected = {props[p].id for p in prices if price_in_bracket(Decimal(p), bounds)}
        res = api_client.get(LIST_URL, {"price": token})
        assert set(_ids(res)) == expected, token


def test_featured_is_capped_at_six_available(api_client, property_factory):
    for i in range(8):
        property_factory(title=f"Flat {i}")
    property_factory(title="Pending", status=Property.Status.PENDING_APPROVAL)

    res = api_client.get("/api/properties/featured/")
    assert res.status_code == 200
    assert len(res.data) == 6
    assert all(row["status"] == "available" for row in res.data)


def test_catalog_cards_never_carry_contact_fields(api_client, property_factory):
    property_factory()
    row = api_client.get(LIST_URL).data[0]
    assert "landlord" not in row
    assert "phone" not in row and "email" not in row
