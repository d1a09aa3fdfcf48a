from datetime import date
from decimal import Decimal

import pytest

from mr_core.doctors.selectors import doctor_stats
from mr_core.financials.services import FinancialService
from mr_core.leads.models import LeadStatus
from mr_core.leads.services import LeadService
from mr_core.payouts.services import PayoutService

pytestmark = pytest.mark.django_db


def test_stats_roll_up(make_lead, doctor, sub_admin):
    active = make_lead(patient_name="Active")
    LeadService.update_status(lead_id=active.id, status=LeadStatus.CONTACTED, actor=sub_admin)
    cancelled = make_lead(patient_name="Cancelled")
    LeadService.update_status(lead_id=cancelled.id, status=LeadStatus.CANCELLED, actor=sub_admin)

    FinancialService.create_manual(actor=sub_admin, lead_id=active.id, rental_amount="2000")
    payout = PayoutService.create_payout(
        actor=sub_admin,
        doctor_id=doctor.id,
        amount="100",
        period_start=date(2024, 1, 1),
        period_end=date(2024, 1, 31),
    )
    PayoutService.mark_paid(actor=sub_admin, payout_id=payout.id)

    stats = doctor_stats(doctor_id=doctor.id)

    assert stats["total_leads"] == 2
    assert stats["active_leads"] == 1
    assert stats["completed_leads"] == 0
    assert stats["total_earnings"] == Decimal("300.00")
    assert stats["paid_payouts"] == Decimal("100.00")
    assert stats["pending_commission"] == Decimal("200.00")


def test_doctor_detail_endpoint(admin_client, doctor):
    r = admin_client.get(f"/api/v1/doctors/{doctor.id}/")

    assert r.status_code == 200
    assert r.data["clinic_name"] == "Mehta Clinic"
    assert r.data["stats"]["total_leads"] == 0
