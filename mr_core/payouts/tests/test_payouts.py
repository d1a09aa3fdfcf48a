# mr_core/payouts/tests/test_payouts.py
from datetime import date, timedelta
from decimal import Decimal

import pytest
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from mr_core.common.actor import Actor
from mr_core.common.api.exceptions import AuthorizationError
from mr_core.common.models import PaymentStatus
from mr_core.common.permissions import ROLE_SUPER_ADMIN
from mr_core.financials.services import FinancialService
from mr_core.payouts.models import PaymentMethod
from mr_core.payouts.selectors import outstanding_commission, payout_totals, payouts_visible_to
from mr_core.payouts.services import PayoutService

pytestmark = pytest.mark.django_db

JAN = dict(period_start=date(2024, 1, 1), period_end=date(2024, 1, 31))


def _this_month():
    today = timezone.localdate()
    return dict(period_start=today - timedelta(days=15), period_end=today + timedelta(days=15))


def test_create_payout_with_manual_amount(doctor, sub_admin):
    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="1250.5", notes="Jan", **JAN)

    assert payout.amount == Decimal("1250.50")
    assert payout.status == PaymentStatus.PENDING
    assert payout.processed_by_id is None


@pytest.mark.parametrize("amount", ["0", "-10"])
def test_non_positive_amount_rejected(doctor, sub_admin, amount):
    with pytest.raises(ValidationError):
        PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount=amount, **JAN)


def test_inverted_period_rejected(doctor, sub_admin):
    with pytest.raises(ValidationError):
        PayoutService.create_payout(
            actor=sub_admin,
            doctor_id=doctor.id,
            amount="10",
            period_start=date(2024, 2, 1),
            period_end=date(2024, 1, 1),
        )


def test_amount_defaults_to_outstanding_commission(make_lead, doctor, sub_admin):
    lead = make_lead()
    FinancialService.create_manual(actor=sub_admin, lead_id=lead.id, rental_amount="2000")
    period = _this_month()

    assert outstanding_commission(doctor_id=doctor.id, **period) == Decimal("300.00")

    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, **period)
    assert payout.amount == Decimal("300.00")
    assert outstanding_commission(doctor_id=doctor.id, **period) == Decimal("0.00")

    with pytest.raises(ValidationError):
        PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, **period)


def test_cancelled_payouts_do_not_count_against_outstanding(make_lead, doctor, sub_admin):
    lead = make_lead()
    FinancialService.create_manual(actor=sub_admin, lead_id=lead.id, rental_amount="1000")
    period = _this_month()

    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, **period)
    PayoutService.update_payout(actor=sub_admin, payout_id=payout.id, status=PaymentStatus.CANCELLED)

    assert outstanding_commission(doctor_id=doctor.id, **period) == Decimal("150.00")


def test_processed_by_is_set_once(doctor, sub_admin, super_admin_user):
    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="100", **JAN)

    paid = PayoutService.mark_paid(
        actor=sub_admin,
        payout_id=payout.id,
        payment_method=PaymentMethod.UPI,
        transaction_id="UPI-001",
    )
    first_date = paid.payment_date
    assert paid.status == PaymentStatus.PAID
    assert paid.processed_by_id == sub_admin.user_id
    assert first_date is not None

    other = Actor(user_id=super_admin_user.pk, role=ROLE_SUPER_ADMIN)
    again = PayoutService.mark_paid(actor=other, payout_id=payout.id, receipt_url="https://example.com/r/1")

    assert again.processed_by_id == sub_admin.user_id
    assert again.payment_date == first_date
    assert again.transaction_id == "UPI-001"
    assert again.receipt_url == "https://example.com/r/1"


def test_paid_payout_cannot_be_cancelled(doctor, sub_admin):
    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="100", **JAN)
    PayoutService.mark_paid(actor=sub_admin, payout_id=payout.id)

    with pytest.raises(ValidationError):
        PayoutService.update_payout(actor=sub_admin, payout_id=payout.id, status=PaymentStatus.CANCELLED)


def test_cancelled_payout_cannot_be_paid(doctor, sub_admin):
    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="100", **JAN)
    PayoutService.update_payout(actor=sub_admin, payout_id=payout.id, status=PaymentStatus.CANCELLED, notes="dup")

    with pytest.raises(ValidationError):
        PayoutService.mark_paid(actor=sub_admin, payout_id=payout.id)


def test_doctor_cannot_create_payouts(doctor, doctor_actor):
    with pytest.raises(AuthorizationError):
        PayoutService.create_payout(actor=doctor_actor, doctor_id=doctor.id, amount="10", **JAN)


def test_listing_and_totals(doctor, other_doctor, doctor_actor, sub_admin):
    a = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="100", **JAN)
    PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="40", **JAN)
    c = PayoutService.create_payout(actor=sub_admin, doctor_id=other_doctor.id, amount="7", **JAN)
    PayoutService.mark_paid(actor=sub_admin, payout_id=a.id)
    PayoutService.update_payout(actor=sub_admin, payout_id=c.id, status=PaymentStatus.CANCELLED)

    mine = payouts_visible_to(actor=doctor_actor)
    assert mine.count() == 2

    totals = payout_totals(payouts_visible_to(actor=sub_admin))
    assert totals == {
        "count": 3,
        "total_amount": Decimal("140.00"),
        "pending_amount": Decimal("40.00"),
        "paid_amount": Decimal("100.00"),
    }


def test_payout_api_flow(admin_client, doctor_client, doctor):
    r = admin_client.post(
        "/api/v1/payouts/",
        {"doctor": str(doctor.id), "amount": "250.00", "period_start": "2024-01-01", "period_end": "2024-01-31"},
        format="json",
    )
    assert r.status_code == 201, r.content
    payout_id = r.data["id"]

    r = admin_client.post(f"/api/v1/payouts/{payout_id}/mark_paid/", {"payment_method": "BANK"}, format="json")
    assert r.status_code == 200
    assert r.data["status"] == "PAID"

    r = doctor_client.get("/api/v1/payouts/")
    assert r.status_code == 200
    assert r.data["count"] == 1
    assert str(r.data["totals"]["paid_amount"]) == "250.00"

    r = doctor_client.post(f"/api/v1/payouts/{payout_id}/mark_paid/", {}, format="json")
    assert r.status_code == 403


def test_overlapping_periods_never_pay_a_commission_twice(make_lead, doctor, sub_admin):
    lead = make_lead()
    financial = FinancialService.create_manual(actor=sub_admin, lead_id=lead.id, rental_amount="2000")
    today = timezone.localdate()

    first = PayoutService.create_payout(
        actor=sub_admin, doctor_id=doctor.id, period_start=today - timedelta(days=10), period_end=today
    )
    assert first.amount == Decimal("300.00")
    assert outstanding_commission(doctor_id=doctor.id, period_start=today, period_end=today + timedelta(days=10)) == 0

    with pytest.raises(ValidationError):
        PayoutService.create_payout(
            actor=sub_admin, doctor_id=doctor.id, period_start=today, period_end=today + timedelta(days=10)
        )

    financial.refresh_from_db()
    assert financial.payout_id == first.id


def test_manual_amount_still_covers_the_period(make_lead, doctor, sub_admin):
    lead = make_lead()
    financial = FinancialService.create_manual(actor=sub_admin, lead_id=lead.id, rental_amount="2000")

    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, amount="250", **_this_month())

    financial.refresh_from_db()
    assert payout.amount == Decimal("250.00")
    assert financial.payout_id == payout.id
    assert outstanding_commission(doctor_id=doctor.id) == 0


def test_cancelling_reopens_covered_commission(make_lead, doctor, sub_admin):
    lead = make_lead()
    financial = FinancialService.create_manual(actor=sub_admin, lead_id=lead.id, rental_amount="2000")
    payout = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, **_this_month())

    PayoutService.update_payout(actor=sub_admin, payout_id=payout.id, status=PaymentStatus.CANCELLED)

    financial.refresh_from_db()
    assert financial.payout_id is None
    assert outstanding_commission(doctor_id=doctor.id) == Decimal("300.00")
    replacement = PayoutService.create_payout(actor=sub_admin, doctor_id=doctor.id, **_this_month())
    assert replacement.amount == Decimal("300.00")
