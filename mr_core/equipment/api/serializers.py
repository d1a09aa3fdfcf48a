# mr_core/equipment/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from mr_core.equipment.models import Equipment, EquipmentRentalPrice, EquipmentStatus


class EquipmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Equipment
        fields = ["id", "name", "model_number", "description", "status", "created_at", "updated_at"]
        read_only_fields = fields


class EquipmentWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    model_number = serializers.CharField(max_length=64, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)
    status = serializers.ChoiceField(choices=EquipmentStatus.choices, required=False)


class RentalPriceSerializer(serializers.ModelSerializer):
    city_name = serializers.CharField(source="city.name", read_only=True)
    available = serializers.IntegerField(read_only=True)

    class Meta:
        model = EquipmentRentalPrice
        fields = [
            "id",
            "equipment",
            "city",
            "city_name",
            "price_per_day",
            "quantity",
            "quantity_in_use",
            "available",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class RentalPriceCreateSerializer(serializers.Serializer):
    city = serializers.UUIDField()
    price_per_day = serializers.DecimalField(max_digits=12, decimal_places=2)
    quantity = serializers.IntegerField()


class RentalPriceUpdateSerializer(serializers.Serializer):
    price_per_day = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    quantity = serializers.IntegerField(required=False)
