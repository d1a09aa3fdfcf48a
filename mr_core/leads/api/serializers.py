# mr_core/leads/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from mr_core.leads.models import Lead, LeadStatus, LeadStatusHistory


class LeadStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = LeadStatusHistory
        fields = ["id", "from_status", "status", "changed_by", "comment", "changed_at"]
        read_only_fields = fields


class LeadSerializer(serializers.ModelSerializer):
    doctor_name = serializers.SerializerMethodField()
    city = serializers.CharField(source="city_name", read_only=True)

    class Meta:
        model = Lead
        fields = [
            "id",
            "doctor",
            "doctor_name",
            "patient_name",
            "parent_name",
            "parent_email",
            "phone",
            "location",
            "city",
            "city_id",
            "status",
            "assigned_equipment",
            "notes",
            "submission_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_doctor_name(self, obj: Lead) -> str:
        user = obj.doctor.user
        return user.get_full_name() or user.get_username()


class LeadDetailSerializer(LeadSerializer):
    status_history = LeadStatusHistorySerializer(many=True, read_only=True)
    rental = serializers.SerializerMethodField()
    financial = serializers.SerializerMethodField()

    class Meta(LeadSerializer.Meta):
        fields = [*LeadSerializer.Meta.fields, "status_history", "rental", "financial"]
        read_only_fields = fields

    def get_rental(self, obj: Lead):
        from mr_core.financials.api.serializers import RentalSerializer

        rental = getattr(obj, "rental", None)
        return RentalSerializer(rental).data if rental is not None else None

    def get_financial(self, obj: Lead):
        from mr_core.financials.api.serializers import FinancialSerializer

        financial = getattr(obj, "financial", None)
        return FinancialSerializer(financial).data if financial is not None else None


class LeadCreateSerializer(serializers.Serializer):
    # blank allowed here so the service can report every missing field at once
    patient_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    parent_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    parent_email = serializers.EmailField(required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    location = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    city = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class LeadStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=LeadStatus.choices, required=False)
    comment = serializers.CharField(required=False, allow_blank=True, default="")
    assigned_equipment = serializers.UUIDField(required=False, allow_null=True)
    days_used = serializers.IntegerField(required=False, min_value=1)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, min_value=0)
    notes = serializers.CharField(required=False, allow_blank=True)


class AssignEquipmentSerializer(serializers.Serializer):
    equipment = serializers.UUIDField(allow_null=True)
