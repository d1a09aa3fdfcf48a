# mr_core/payouts/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from mr_core.common.models import PaymentStatus
from mr_core.payouts.models import PaymentMethod, Payout


class PayoutSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payout
        fields = [
            "id",
            "doctor",
            "amount",
            "period_start",
            "period_end",
            "status",
            "payment_date",
            "payment_method",
            "transaction_id",
            "receipt_url",
            "notes",
            "processed_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PayoutCreateSerializer(serializers.Serializer):
    doctor = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    period_start = serializers.DateField()
    period_end = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class PayoutMarkPaidSerializer(serializers.Serializer):
    payment_date = serializers.DateTimeField(required=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)
    transaction_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    receipt_url = serializers.URLField(max_length=500, required=False, allow_blank=True)


class PayoutUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
    notes = serializers.CharField(required=False, allow_blank=True)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, required=False)
    transaction_id = serializers.CharField(max_length=128, required=False, allow_blank=True)
    receipt_url = serializers.URLField(max_length=500, required=False, allow_blank=True)


class OutstandingQuerySerializer(serializers.Serializer):
    doctor = serializers.UUIDField()
    period_start = serializers.DateField(required=False)
    period_end = serializers.DateField(required=False)
