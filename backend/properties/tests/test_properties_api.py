from decimal import Decimal

import pytest

from properties.models import Property


def _payload(**overrides):
    payload = {
        "title": "Harbour View Lodge",
        "location": "Padstow",
        "region": "Cornwall",
        "sleeps_min": 2,
        "sleeps_max": 12,
        "bedrooms": 6,
        "bathrooms": 4,
        "price_midweek": "400.00",
        "price_weekend": "550.00",
        "cleaning_fee": "120.00",
        "security_deposit": "300.00",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def pending_house(owner):
    return Property.objects.create(
        title="Moorland Barn",
        location="Dartmoor",
        sleeps_max=10,
        price_midweek=Decimal("300.00"),
        price_weekend=Decimal("420.00"),
        owner=owner,
    )


def test_public_list_only_shows_bookable_properties(api_client, house, pending_house):
    response = api_client.get("/api/properties/")

    assert response.status_code == 200
    titles = [item["title"] for item in response.json()]
    assert titles == ["The Old Rectory"]
    assert "owner" not in response.json()[0]


def test_public_list_filters_by_guests_and_region(api_client, house):
    assert len(api_client.get("/api/properties/", {"guests": 16}).json()) == 1
    assert api_client.get("/api/properties/", {"guests": 20}).json() == []
    assert api_client.get("/api/properties/", {"region": "cornwall"}).json() == []


def test_anonymous_cannot_see_pending_property(api_client, pending_house):
    response = api_client.get(f"/api/properties/{pending_house.id}/")

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"


def test_owner_sees_own_pending_property_with_management_fields(api_client, owner, pending_house):
    api_client.force_authenticate(owner)

    response = api_client.get(f"/api/properties/{pending_house.id}/")

    assert response.status_code == 200
    assert response.json()["status"] == Property.PENDING


def test_owner_submission_starts_pending(api_client, owner):
    api_client.force_authenticate(owner)

    response = api_client.post("/api/properties/", _payload(is_published=True), format="json")

    assert response.status_code == 201
    created = Property.objects.get(title="Harbour View Lodge")
    assert created.owner == owner
    assert created.status == Property.PENDING
    assert created.is_published is False
    assert created.slug == "harbour-view-lodge"


def test_admin_creation_is_approved_immediately(api_client, site_admin):
    api_client.force_authenticate(site_admin)

    response = api_client.post("/api/properties/", _payload(), format="json")

    assert response.status_code == 201
    created = Property.objects.get(title="Harbour View Lodge")
    assert created.is_bookable
    assert created.approved_by == site_admin


def test_guest_cannot_create_property(api_client, guest):
    api_client.force_authenticate(guest)

    response = api_client.post("/api/properties/", _payload(), format="json")

    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_sleeps_max_must_cover_minimum(api_client, owner):
    api_client.force_authenticate(owner)

    response = api_client.post("/api/properties/", _payload(sleeps_min=10, sleeps_max=4), format="json")

    assert response.status_code == 400
    assert "sleeps_max" in response.json()["fields"]


def test_other_owner_cannot_edit_property(api_client, other_owner, house):
    api_client.force_authenticate(other_owner)

    response = api_client.patch(f"/api/properties/{house.id}/", {"title": "Mine now"}, format="json")

    assert response.status_code == 403
    house.refresh_from_db()
    assert house.title == "The Old Rectory"


def test_owner_updates_own_property(api_client, owner, house):
    api_client.force_authenticate(owner)

    response = api_client.patch(f"/api/properties/{house.id}/", {"price_weekend": "750.00"}, format="json")

    assert response.status_code == 200
    house.refresh_from_db()
    assert house.price_weekend == Decimal("750.00")


def test_owner_cannot_publish_unapproved_property(api_client, owner, pending_house):
    api_client.force_authenticate(owner)

    response = api_client.patch(f"/api/properties/{pending_house.id}/", {"is_published": True}, format="json")

    assert response.status_code == 200
    pending_house.refresh_from_db()
    assert pending_house.is_published is False


def test_mine_lists_all_owner_properties(api_client, owner, house, pending_house):
    api_client.force_authenticate(owner)

    response = api_client.get("/api/properties/mine/")

    assert response.status_code == 200
    assert {item["title"] for item in response.json()} == {"The Old Rectory", "Moorland Barn"}


def test_admin_approval_workflow(api_client, site_admin, pending_house):
    api_client.force_authenticate(site_admin)

    pending = api_client.get("/api/admin/properties/pending/")
    assert [item["id"] for item in pending.json()] == [pending_house.id]

    response = api_client.post(f"/api/admin/properties/{pending_house.id}/approve/")
    assert response.status_code == 200
    pending_house.refresh_from_db()
    assert pending_house.is_bookable
    assert pending_house.approved_by == site_admin

    response = api_client.post(f"/api/admin/properties/{pending_house.id}/unpublish/")
    assert response.status_code == 200
    pending_house.refresh_from_db()
    assert pending_house.is_published is False
    assert pending_house.status == Property.APPROVED


def test_admin_rejects_with_reason(api_client, site_admin, pending_house):
    api_client.force_authenticate(site_admin)

    response = api_client.post(
        f"/api/admin/properties/{pending_house.id}/reject/",
        {"reason": "Photos missing"},
        format="json",
    )

    assert response.status_code == 200
    pending_house.refresh_from_db()
    assert pending_house.status == Property.REJECTED
    assert pending_house.rejection_reason == "Photos missing"


def test_admin_endpoints_require_admin(api_client, owner, pending_house):
    api_client.force_authenticate(owner)

    assert api_client.get("/api/admin/properties/pending/").status_code == 403
    assert api_client.post(f"/api/admin/properties/{pending_house.id}/approve/").status_code == 403


def test_admin_endpoint_unknown_property(api_client, site_admin):
    api_client.force_authenticate(site_admin)

    response = api_client.post("/api/admin/properties/9999/approve/")

    assert response.status_code == 404
    assert response.json()["code"] == "NOT_FOUND"
