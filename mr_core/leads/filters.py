import django_filters

from mr_core.leads.models import Lead, LeadStatus


class LeadFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=LeadStatus.choices)
    doctor = django_filters.UUIDFilter(field_name="doctor_id")
    city = django_filters.CharFilter(field_name="city_name", lookup_expr="iexact")
    submitted_from = django_filters.IsoDateTimeFilter(field_name="submission_date", lookup_expr="gte")
    submitted_to = django_filters.IsoDateTimeFilter(field_name="submission_date", lookup_expr="lte")

    class Meta:
        model = Lead
        fields = ["status", "doctor", "city"]
