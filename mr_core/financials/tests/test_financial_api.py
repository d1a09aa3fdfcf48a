import pytest

from mr_core.financials.services import FinancialService

pytestmark = pytest.mark.django_db


def test_list_carries_totals(admin_client, make_lead, sub_admin):
    lead = make_lead()
    FinancialService.create_manual(actor=sub_admin, lead_id=lead.id, rental_amount="1000")

    r = admin_client.get("/api/v1/financials/?payment_status=PENDING")

    assert r.status_code == 200
    assert r.data["count"] == 1
    assert str(r.data["totals"]["total_commission"]) == "150.00"


def test_create_and_conflict(admin_client, make_lead):
    lead = make_lead()
    payload = {"lead": str(lead.id), "rental_amount": "500.00", "other_expenses": [{"description": "Ice packs", "amount": "20"}]}

    r = admin_client.post("/api/v1/financials/", payload, format="json")
    assert r.status_code == 201, r.content
    assert r.data["doctor_commission"] == "75.00"

    r = admin_client.post("/api/v1/financials/", payload, format="json")
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "conflict"


def test_doctors_have_no_access(doctor_client):
    r = doctor_client.get("/api/v1/financials/")
    assert r.status_code == 403
