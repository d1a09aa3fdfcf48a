import django_filters

from mr_core.common.models import PaymentStatus
from mr_core.payouts.models import Payout


class PayoutFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    period_from = django_filters.DateFilter(field_name="period_start", lookup_expr="gte")
    period_to = django_filters.DateFilter(field_name="period_end", lookup_expr="lte")

    class Meta:
        model = Payout
        fields = ["status"]
