import django_filters

from mr_core.common.models import PaymentStatus
from mr_core.financials.models import Financial


class FinancialFilter(django_filters.FilterSet):
    payment_status = django_filters.ChoiceFilter(choices=PaymentStatus.choices)
    doctor = django_filters.UUIDFilter(field_name="lead__doctor_id")
    lead = django_filters.UUIDFilter(field_name="lead_id")
    created_from = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_to = django_filters.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")

    class Meta:
        model = Financial
        fields = ["payment_status", "doctor", "lead"]
