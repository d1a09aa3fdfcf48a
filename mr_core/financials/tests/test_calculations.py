from decimal import Decimal

import pytest
from rest_framework.exceptions import ValidationError

from mr_core.financials.calculations import calculate_settlement, commission_split


def test_mumbai_breakdown():
    s = calculate_settlement(days_used=10, price_per_day="300.00", commission_rate="15", shipping_cost="100")

    assert s.rental_amount == Decimal("3000.00")
    assert s.gst_amount == Decimal("558.00")
    assert s.base_amount == Decimal("3100.00")
    assert s.doctor_commission == Decimal("450.00")
    assert s.net_profit == Decimal("2550.00")
    assert s.commission_rate == Decimal("15.00")


def test_settlement_is_deterministic():
    kwargs = dict(days_used=7, price_per_day=Decimal("433.33"), commission_rate=Decimal("12.50"), shipping_cost="49.99")
    assert calculate_settlement(**kwargs) == calculate_settlement(**kwargs)


def test_half_cent_rounds_up():
    s = calculate_settlement(days_used=1, price_per_day="0.25", commission_rate="0")
    # 0.25 * 0.18 = 0.045
    assert s.gst_amount == Decimal("0.05")

    commission, net = commission_split(rental_amount="100.30", commission_rate="12.5")
    # 12.5375
    assert commission == Decimal("12.54")
    assert net == Decimal("87.76")


def test_gst_rate_comes_from_settings(settings):
    settings.MR_GST_RATE = Decimal("0.05")
    s = calculate_settlement(days_used=2, price_per_day="100", commission_rate="10")
    assert s.gst_amount == Decimal("10.00")

    # the settings value is the only GST source
    with pytest.raises(TypeError):
        calculate_settlement(days_used=2, price_per_day="100", commission_rate="10", rate=Decimal("0.18"))


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(days_used=0, price_per_day="100", commission_rate="10"),
        dict(days_used=-3, price_per_day="100", commission_rate="10"),
        dict(days_used=2, price_per_day="-1", commission_rate="10"),
        dict(days_used=2, price_per_day="100", commission_rate="10", shipping_cost="-5"),
    ],
)
def test_invalid_inputs(kwargs):
    with pytest.raises(ValidationError):
        calculate_settlement(**kwargs)
