from rest_framework import serializers

from mr_core.cities.models import City


class CitySerializer(serializers.ModelSerializer):
    class Meta:
        model = City
        fields = ["id", "name", "state", "is_active", "created_at", "updated_at"]
        read_only_fields = fields


class CityCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128)
    state = serializers.CharField(max_length=128, required=False, allow_blank=True, default="")


class CityUpdateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=128, required=False)
    state = serializers.CharField(max_length=128, required=False, allow_blank=True)
    is_active = serializers.BooleanField(required=False)
