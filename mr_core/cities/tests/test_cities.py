import pytest

from mr_core.cities.models import City
from mr_core.cities.selectors import find_city_by_name
from mr_core.cities.services import CityService
from mr_core.common.api.exceptions import AuthorizationError, ConflictError, NotFoundError

pytestmark = pytest.mark.django_db


def test_lookup_is_case_insensitive_and_trimmed(mumbai):
    assert find_city_by_name("  MUMBAI ") == mumbai
    assert find_city_by_name("Delhi") is None
    assert find_city_by_name("") is None


def test_duplicate_name_differing_only_in_case(mumbai):
    with pytest.raises(ConflictError):
        CityService.create_city(name="mumbai")


def test_city_api(admin_client, doctor_client, mumbai):
    r = admin_client.post("/api/v1/cities/", {"name": "Chennai", "state": "Tamil Nadu"}, format="json")
    assert r.status_code == 201

    r = doctor_client.get("/api/v1/cities/")
    assert r.status_code == 200
    assert [c["name"] for c in r.data["results"]] == ["Chennai", "Mumbai"]

    r = doctor_client.post("/api/v1/cities/", {"name": "Goa"}, format="json")
    assert r.status_code == 403


def test_rename_onto_existing_name_is_conflict(mumbai, pune, sub_admin):
    with pytest.raises(ConflictError):
        CityService.update_city(actor=sub_admin, city_id=pune.id, name=" MUMBAI")

    city = CityService.update_city(actor=sub_admin, city_id=pune.id, name="Pune City", is_active=False)
    assert city.name == "Pune City"
    assert city.is_active is False


def test_doctor_cannot_update_city(mumbai, doctor_actor):
    with pytest.raises(AuthorizationError):
        CityService.update_city(actor=doctor_actor, city_id=mumbai.id, is_active=False)


def test_referenced_city_cannot_be_deleted(make_lead, pune, super_admin):
    make_lead(city="Pune")

    with pytest.raises(ConflictError):
        CityService.delete_city(actor=super_admin, city_id=pune.id)
    assert City.objects.filter(id=pune.id).exists()


def test_unreferenced_city_is_deleted(pune, super_admin, sub_admin):
    with pytest.raises(AuthorizationError):
        CityService.delete_city(actor=sub_admin, city_id=pune.id)

    CityService.delete_city(actor=super_admin, city_id=pune.id)

    assert not City.objects.filter(id=pune.id).exists()
    with pytest.raises(NotFoundError):
        CityService.delete_city(actor=super_admin, city_id=pune.id)


def test_city_detail_api(admin_client, super_client, doctor_client, pune):
    r = admin_client.patch(f"/api/v1/cities/{pune.id}/", {"is_active": False}, format="json")
    assert r.status_code == 200
    assert r.data["is_active"] is False

    assert admin_client.get(f"/api/v1/cities/{pune.id}/").status_code == 200
    assert doctor_client.get(f"/api/v1/cities/{pune.id}/").status_code == 404
    assert doctor_client.patch(f"/api/v1/cities/{pune.id}/", {"name": "Poona"}, format="json").status_code == 403

    assert admin_client.delete(f"/api/v1/cities/{pune.id}/").status_code == 403
    assert super_client.delete(f"/api/v1/cities/{pune.id}/").status_code == 204
