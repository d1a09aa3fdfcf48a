# mr_core/financials/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from mr_core.common.models import PaymentStatus
from mr_core.financials.models import Financial, Rental


class RentalSerializer(serializers.ModelSerializer):
    class Meta:
        model = Rental
        fields = [
            "id",
            "lead",
            "equipment",
            "start_datetime",
            "end_datetime",
            "days_used",
            "billing_increment",
            "status",
        ]
        read_only_fields = fields


class FinancialSerializer(serializers.ModelSerializer):
    patient_name = serializers.CharField(source="lead.patient_name", read_only=True)
    doctor = serializers.UUIDField(source="lead.doctor_id", read_only=True)

    class Meta:
        model = Financial
        fields = [
            "id",
            "lead",
            "patient_name",
            "doctor",
            "rental_amount",
            "shipping_cost",
            "gst_amount",
            "other_expenses",
            "base_amount",
            "commission_rate_applied",
            "doctor_commission",
            "net_profit",
            "payment_status",
            "payment_received_date",
            "payout",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ExpenseItemSerializer(serializers.Serializer):
    description = serializers.CharField(max_length=255, allow_blank=True, default="")
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)


class FinancialCreateSerializer(serializers.Serializer):
    lead = serializers.UUIDField()
    rental_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    gst_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    other_expenses = ExpenseItemSerializer(many=True, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False, default=PaymentStatus.PENDING)


class FinancialUpdateSerializer(serializers.Serializer):
    rental_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    gst_amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    other_expenses = ExpenseItemSerializer(many=True, required=False)
    payment_status = serializers.ChoiceField(choices=PaymentStatus.choices, required=False)
