# mr_core/doctors/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from mr_core.doctors.models import CommissionHistory, Doctor, DoctorStatus


class DoctorSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source="user.username", read_only=True)
    email = serializers.CharField(source="user.email", read_only=True)
    name = serializers.SerializerMethodField()

    class Meta:
        model = Doctor
        fields = [
            "id",
            "user",
            "username",
            "email",
            "name",
            "clinic_name",
            "phone",
            "city",
            "commission_rate",
            "status",
            "notes",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_name(self, obj: Doctor) -> str:
        return obj.user.get_full_name() or obj.user.get_username()


class DoctorStatsSerializer(serializers.Serializer):
    total_leads = serializers.IntegerField()
    completed_leads = serializers.IntegerField()
    active_leads = serializers.IntegerField()
    total_earnings = serializers.DecimalField(max_digits=14, decimal_places=2)
    paid_payouts = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_commission = serializers.DecimalField(max_digits=14, decimal_places=2)


class DoctorCreateSerializer(serializers.Serializer):
    user = serializers.IntegerField()
    commission_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    city = serializers.UUIDField(required=False, allow_null=True)
    clinic_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(choices=DoctorStatus.choices, required=False, default=DoctorStatus.ACTIVE)


class CommissionRateSerializer(serializers.Serializer):
    commission_rate = serializers.DecimalField(max_digits=5, decimal_places=2)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class CommissionHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionHistory
        fields = ["id", "doctor", "old_rate", "new_rate", "effective_date", "changed_by", "reason"]
        read_only_fields = fields


class DoctorUpdateSerializer(serializers.Serializer):
    clinic_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=32, required=False, allow_blank=True)
    city = serializers.UUIDField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=DoctorStatus.choices, required=False)
    commission_rate = serializers.DecimalField(max_digits=5, decimal_places=2, required=False)
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class DoctorRegisterSerializer(serializers.Serializer):
    username = serializers.CharField(max_length=150)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    first_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    last_name = serializers.CharField(max_length=150, required=False, allow_blank=True, default="")
    phone = serializers.CharField(max_length=32)
    city = serializers.CharField(max_length=128)
    clinic_name = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
