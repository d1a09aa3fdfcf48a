# mr_core/leads/tests/test_lead_api.py
import pytest
from rest_framework.test import APIClient

from mr_core.leads.models import Lead, LeadStatus
from mr_core.leads.services import LeadService

pytestmark = pytest.mark.django_db

LEAD_PAYLOAD = {
    "patient_name": "Baby Iyer",
    "parent_name": "Anita Iyer",
    "parent_email": "anita@example.com",
    "phone": "+919811111111",
    "location": "Bandra",
    "city": "Mumbai",
}


def test_doctor_submits_lead(doctor_client, doctor, mumbai):
    r = doctor_client.post("/api/v1/leads/", LEAD_PAYLOAD, format="json")

    assert r.status_code == 201, r.content
    assert r.data["status"] == LeadStatus.NEW_LEAD
    assert r.data["city"] == "Mumbai"
    assert Lead.objects.get(id=r.data["id"]).doctor_id == doctor.id


def test_missing_fields_return_validation_envelope(doctor_client):
    r = doctor_client.post("/api/v1/leads/", {**LEAD_PAYLOAD, "phone": ""}, format="json")

    assert r.status_code == 400
    body = r.json()
    assert body["error"]["code"] == "validation_error"
    assert "phone" in body["error"]["details"]
    assert body["error"]["request_id"]


def test_doctor_lists_own_leads_paginated(doctor_client, make_lead, other_doctor_actor):
    mine = make_lead()
    make_lead(actor=other_doctor_actor, patient_name="Not mine")

    r = doctor_client.get("/api/v1/leads/")

    assert r.status_code == 200
    assert r.data["count"] == 1
    assert r.data["results"][0]["id"] == str(mine.id)


def test_list_rejects_unknown_status(admin_client, make_lead):
    make_lead()
    r = admin_client.get("/api/v1/leads/?status=ARCHIVED")
    assert r.status_code == 400


def test_doctor_cannot_change_status(doctor_client, make_lead):
    lead = make_lead()

    r = doctor_client.post(f"/api/v1/leads/{lead.id}/status/", {"status": "CONTACTED"}, format="json")

    assert r.status_code == 403
    assert r.json()["error"]["code"] == "permission_denied"


def test_other_doctor_gets_authorization_error(make_lead, other_doctor):
    lead = make_lead()
    client = APIClient()
    client.force_authenticate(user=other_doctor.user)

    r = client.get(f"/api/v1/leads/{lead.id}/")

    assert r.status_code == 403
    assert r.json()["error"]["code"] == "authorization_error"


def test_retrieve_includes_history_newest_first(admin_client, make_lead, sub_admin):
    lead = make_lead()
    LeadService.update_status(lead_id=lead.id, status=LeadStatus.CONTACTED, actor=sub_admin)

    r = admin_client.get(f"/api/v1/leads/{lead.id}/")

    assert r.status_code == 200
    assert [h["status"] for h in r.data["status_history"]] == ["CONTACTED", "NEW_LEAD"]
    assert r.data["financial"] is None
    assert r.data["rental"] is None


def test_patch_assigns_then_null_unassigns(admin_client, make_lead, ventilator, ventilator_mumbai):
    lead = make_lead()

    r = admin_client.patch(
        f"/api/v1/leads/{lead.id}/",
        {"status": "CONTACTED", "assigned_equipment": str(ventilator.id)},
        format="json",
    )
    assert r.status_code == 200, r.content
    assert str(r.data["assigned_equipment"]) == str(ventilator.id)
    ventilator_mumbai.refresh_from_db()
    assert ventilator_mumbai.quantity_in_use == 1

    r = admin_client.patch(f"/api/v1/leads/{lead.id}/", {"assigned_equipment": None}, format="json")
    assert r.status_code == 200
    assert r.data["assigned_equipment"] is None
    ventilator_mumbai.refresh_from_db()
    assert ventilator_mumbai.quantity_in_use == 0


def test_capacity_exhausted_is_409(admin_client, make_lead, ventilator, ventilator_mumbai):
    first = make_lead(patient_name="A")
    second = make_lead(patient_name="B")
    admin_client.post(f"/api/v1/leads/{first.id}/assign_equipment/", {"equipment": str(ventilator.id)}, format="json")

    r = admin_client.post(
        f"/api/v1/leads/{second.id}/assign_equipment/",
        {"equipment": str(ventilator.id)},
        format="json",
    )

    assert r.status_code == 409
    assert r.json()["error"]["code"] == "capacity_exhausted"


def test_no_pricing_in_city_is_422(admin_client, make_lead, pune, ventilator, ventilator_mumbai):
    lead = make_lead(city="Pune")

    r = admin_client.post(f"/api/v1/leads/{lead.id}/assign_equipment/", {"equipment": str(ventilator.id)}, format="json")

    assert r.status_code == 422
    assert r.json()["error"]["code"] == "not_available"


def test_invalid_transition_is_400_with_allowed_statuses(admin_client, make_lead):
    lead = make_lead()

    r = admin_client.post(f"/api/v1/leads/{lead.id}/status/", {"status": "COMPLETED", "days_used": 3}, format="json")

    assert r.status_code == 400
    assert r.json()["error"]["details"]["allowed"] == ["CANCELLED", "CONTACTED", "FAILED"]


def test_malformed_lead_id_is_404(admin_client):
    r = admin_client.get("/api/v1/leads/not-a-uuid/")
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "not_found"
